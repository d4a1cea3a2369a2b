from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List

#unified model errors
class ModelError(RuntimeError): ...
class ModelTimeout(ModelError): ...
class ModelRetryable(ModelError): ...
class MissingCredentialError(ModelError): ...

@dataclass(frozen=True)
class InlinePart:
    data: str #base64 encoded payload
    mime_type: str
    filename: Optional[str] = None

@dataclass(frozen=True)
class GenerateRequest:
    model: str
    messages: List[Dict[str, Any]]
    parts: List[InlinePart] = field(default_factory=list) #attached after the user text
    params: Dict[str, Any] | None = None
    stop: Optional[List[str]] = None

    @property
    def system_text(self) -> Optional[str]:
        system = [m["content"] for m in self.messages if m.get("role") == "system" and m.get("content")]
        return "\n\n".join(system) if system else None

    @property
    def user_text(self) -> str:
        return "\n\n".join(m.get("content", "") for m in self.messages if m.get("role") == "user")

@dataclass(frozen=True)
class ModelResponse:
    content: str
    raw: Any #provider-native response obj/dict
    meta: Dict[str, Any] #timings, token counts, model, etc.

class ModelProvider(ABC):
    @abstractmethod
    def generate(self, req: GenerateRequest) -> ModelResponse:
        raise NotImplementedError

    @abstractmethod
    def health_check(self) -> bool:
        raise NotImplementedError

from __future__ import annotations
from typing import Dict, Any, Optional, List
import time
from os import getenv

from openai import OpenAI
from openai import APIError, APIStatusError, APITimeoutError, APIConnectionError
from tenacity import Retrying, stop_after_attempt, wait_exponential_jitter, retry_if_exception

from .base import ModelProvider, GenerateRequest, ModelResponse, ModelError, ModelRetryable, ModelTimeout, MissingCredentialError, InlinePart

RETRYABLE_STATUS = {408, 409, 429, 500, 502, 503, 504}
AUDIO_FORMATS = {"audio/wav": "wav", "audio/x-wav": "wav", "audio/wave": "wav", "audio/mpeg": "mp3", "audio/mp3": "mp3"}

# Define retryable OpenAI exceptions
def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (APITimeoutError, APIConnectionError)):
        return True
    if isinstance(exc, APIStatusError):
        return exc.status_code in RETRYABLE_STATUS
    return isinstance(exc, ModelRetryable)

def _content_part(part: InlinePart) -> Dict[str, Any]:
    """Map an inline part onto the chat-completions content part for its media type."""
    if part.mime_type.startswith("image/"):
        return {"type": "image_url", "image_url": {"url": f"data:{part.mime_type};base64,{part.data}"}}
    if part.mime_type in AUDIO_FORMATS:
        return {"type": "input_audio", "input_audio": {"data": part.data, "format": AUDIO_FORMATS[part.mime_type]}}
    return {
        "type": "file",
        "file": {
            "filename": part.filename or "upload",
            "file_data": f"data:{part.mime_type};base64,{part.data}",
        },
    }

class OpenAIProvider(ModelProvider):
    """Provider for OpenAI-compatible chat-completions endpoints, e.g. Gemini's OpenAI compatibility layer."""

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, api_key_env: str = "OPENAI_API_KEY", default_headers: Optional[Dict[str, str]] = None, timeout: float = 60.0, max_attempts: int = 1, **kwargs):
        api_key = api_key or getenv(api_key_env)
        if not api_key:
            raise MissingCredentialError(f"{api_key_env} is not set")
        self.client = OpenAI(
            base_url=base_url,
            api_key=api_key,
            default_headers=default_headers or {},
            timeout=timeout,
            **kwargs
        )
        self.base_url = base_url
        self.timeout = timeout
        self.max_attempts = max(1, int(max_attempts))

    def _format_messages(self, req: GenerateRequest) -> List[Dict[str, Any]]:
        """Attach inline parts to the first user message using the content array format"""
        if not req.parts:
            return list(req.messages)

        processed_messages = []
        parts_added = False
        for msg in req.messages:
            if msg.get("role") == "user" and not parts_added:
                processed_msg = msg.copy()
                content_array = [{"type": "text", "text": msg.get("content", "")}]
                content_array.extend(_content_part(p) for p in req.parts)
                processed_msg["content"] = content_array
                processed_messages.append(processed_msg)
                parts_added = True
            else:
                processed_messages.append(msg)
        return processed_messages

    def generate(self, req: GenerateRequest) -> ModelResponse:
        retrying = Retrying(
            reraise=True,
            wait=wait_exponential_jitter(initial=0.5, max=4),
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_exception(_is_retryable),
        )
        for attempt in retrying:
            with attempt:
                return self._generate_once(req)

    def _generate_once(self, req: GenerateRequest) -> ModelResponse:
        params = dict(req.params or {})
        completion_params = {
            "model": req.model,
            "messages": self._format_messages(req),
            **params
        }
        if req.stop:
            completion_params.setdefault("stop", list(req.stop))

        t0 = time.perf_counter()
        try:
            response = self.client.chat.completions.create(**completion_params)
        except APITimeoutError as e:
            raise ModelTimeout(f"OpenAI timeout: {e}") from e
        except APIError as e:
            msg = f"OpenAI API error: {e}"
            if _is_retryable(e):
                raise ModelRetryable(msg) from e
            raise ModelError(msg) from e
        except Exception as e:
            raise ModelError(f"OpenAI provider error: {e}") from e
        dt = time.perf_counter() - t0

        try:
            content = response.choices[0].message.content or ""
        except (IndexError, AttributeError) as e:
            raise ModelError(f"Invalid response structure from OpenAI API: {e}") from e

        meta = {
            "provider": "openai",
            "model": getattr(response, 'model', req.model),
            "latency": dt,
            "base_url": self.base_url or "https://api.openai.com/v1",
            "parts": len(req.parts),
        }
        if getattr(response, 'usage', None):
            meta["usage"] = response.usage.model_dump()
        meta["finish_reason"] = getattr(response.choices[0], 'finish_reason', None)

        return ModelResponse(content=content, raw=response, meta=meta)

    def health_check(self) -> bool:
        """SYNCHRONOUS health check - blocks until complete"""
        try:
            _ = self.client.models.list()
            return True
        except Exception:
            return False

    def cleanup(self):
        self.client.close()

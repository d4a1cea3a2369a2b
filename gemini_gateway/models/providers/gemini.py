from __future__ import annotations
from typing import Any, Dict, List, Optional
import base64
import time
from os import getenv

import httpx
from google import genai
from google.genai import errors, types
from tenacity import Retrying, stop_after_attempt, wait_exponential_jitter, retry_if_exception

from .base import ModelProvider, GenerateRequest, ModelResponse, ModelError, ModelRetryable, ModelTimeout, MissingCredentialError

RETRYABLE_STATUS = {408, 409, 429, 500, 502, 503, 504}
DEFAULT_API_KEY_ENV = "GEMINI_API_KEY"

def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, errors.APIError):
        return getattr(exc, "code", None) in RETRYABLE_STATUS
    return isinstance(exc, ModelRetryable)

class GeminiProvider(ModelProvider):
    def __init__(self, api_key: Optional[str] = None, api_key_env: str = DEFAULT_API_KEY_ENV, timeout: float = 120.0, max_attempts: int = 1):
        api_key = api_key or getenv(api_key_env)
        if not api_key:
            raise MissingCredentialError(f"{api_key_env} is not set")
        self.timeout = timeout
        self.max_attempts = max(1, int(max_attempts))
        #google-genai expects the timeout in milliseconds
        self.client = genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=int(timeout * 1000)))

    def _build_contents(self, req: GenerateRequest) -> Any:
        if not req.parts:
            return req.user_text
        contents: List[Any] = [types.Part.from_text(text=req.user_text)]
        for part in req.parts:
            try:
                data = base64.b64decode(part.data)
            except (ValueError, TypeError) as e:
                raise ModelError(f"Invalid inline data for {part.mime_type}: {e}") from e
            contents.append(types.Part.from_bytes(data=data, mime_type=part.mime_type))
        return contents

    def _build_config(self, req: GenerateRequest) -> Optional[types.GenerateContentConfig]:
        params = dict(req.params or {})
        timeout = params.pop("timeout", None)
        if timeout:
            params["http_options"] = types.HttpOptions(timeout=int(float(timeout) * 1000))
        if req.stop:
            params.setdefault("stop_sequences", list(req.stop))
        system = req.system_text
        if system:
            params["system_instruction"] = system
        if not params:
            return None
        return types.GenerateContentConfig(**params)

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
        contents = self._build_contents(req)
        config = self._build_config(req)

        t0 = time.perf_counter()
        try:
            response = self.client.models.generate_content(model=req.model, contents=contents, config=config)
        except httpx.TimeoutException as e:
            raise ModelTimeout(f"Gemini timeout after {self.timeout}s: {e}") from e
        except errors.APIError as e:
            msg = getattr(e, "message", None) or str(e)
            if _is_retryable(e):
                raise ModelRetryable(msg) from e
            raise ModelError(msg) from e
        except Exception as e:
            raise ModelError(f"Gemini request failed: {e}") from e
        dt = time.perf_counter() - t0

        content = response.text or ""

        meta: Dict[str, Any] = {
            "provider": "gemini",
            "model": getattr(response, "model_version", None) or req.model,
            "latency": dt,
            "parts": len(req.parts),
        }
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            meta["usage"] = usage.model_dump(exclude_none=True)
        candidates = getattr(response, "candidates", None)
        if candidates:
            finish_reason = getattr(candidates[0], "finish_reason", None)
            meta["finish_reason"] = str(finish_reason) if finish_reason is not None else None

        return ModelResponse(content=content, raw=response, meta=meta)

    def health_check(self) -> bool:
        try:
            next(iter(self.client.models.list()), None)
            return True
        except Exception:
            return False

    def cleanup(self):
        close = getattr(self.client, "close", None)
        if callable(close):
            close()

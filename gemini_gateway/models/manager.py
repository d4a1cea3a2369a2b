from __future__ import annotations
from typing import Optional, Dict, Any, List, Union
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum
from os import getenv
import yaml
import time
import logging
import threading
from contextlib import contextmanager

from .prompts import PromptManager
from .providers.base import GenerateRequest, InlinePart, ModelResponse, MissingCredentialError
from .providers.gemini import GeminiProvider, DEFAULT_API_KEY_ENV
from .providers.openai_sdk import OpenAIProvider

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parents[1] / "config" / "config.yaml"
DEFAULT_PROMPTS_DIR = Path(__file__).parents[1] / "prompts"


class Provider(Enum):
    GEMINI = "gemini"
    OPENAI = "openai"

_DEFAULT_KEY_ENVS = {
    Provider.GEMINI.value: DEFAULT_API_KEY_ENV,
    Provider.OPENAI.value: "OPENAI_API_KEY",
}

@dataclass(frozen=True)
class TaskConfig:
    provider: str
    model: str
    prompt_ref: str #e.g. "generate/image@v1"
    params: Dict[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None


class ModelManager:
    def __init__(self, config_path: Union[Path, str] = DEFAULT_CONFIG_PATH, prompts_dir: Optional[Path] = None):
        self.config_path = Path(config_path)
        self.config = self._load_config()
        self._providers = {}
        self._stats = {} #performance tracking
        self._lock = threading.Lock() #guards providers and stats across worker threads
        self.prompts = PromptManager(prompts_dir or DEFAULT_PROMPTS_DIR)

    def _load_config(self) -> Dict:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config not found: {self.config_path}")
        with open(self.config_path) as f:
            config = yaml.safe_load(f) or {}

        if 'providers' not in config:
            raise ValueError("Config missing 'providers'")
        if 'tasks' not in config:
            raise ValueError("Config missing 'tasks'")

        for provider_name, provider_cfg in config['providers'].items():
            provider_type = (provider_cfg or {}).get('type')
            if provider_type not in _DEFAULT_KEY_ENVS:
                raise ValueError(f"Provider '{provider_name}' has unknown type '{provider_type}'")

        for task_name, task_cfg in config['tasks'].items():
            for key in ('provider', 'model', 'prompt_ref'):
                if key not in task_cfg:
                    raise ValueError(f"Task '{task_name}' missing {key}")
            if task_cfg['provider'] not in config['providers']:
                raise ValueError(f"Task '{task_name}' references unknown provider '{task_cfg['provider']}'")

        return config

    def task_config(self, task: str) -> TaskConfig:
        if task not in self.config["tasks"]:
            raise ValueError(f"Unknown task: {task}")
        task_cfg = self.config["tasks"][task]
        return TaskConfig(
            provider=task_cfg["provider"],
            model=task_cfg["model"],
            prompt_ref=task_cfg["prompt_ref"],
            params=dict(task_cfg.get("params") or {}),
            timeout=task_cfg.get("timeout"),
        )

    def credential_env(self, provider_name: str) -> Optional[str]:
        """Environment variable holding the provider's key, or None when the key is inline in the config."""
        provider_cfg = self.config["providers"][provider_name]
        settings = provider_cfg.get("settings") or {}
        if settings.get("api_key"):
            return None
        return settings.get("api_key_env") or _DEFAULT_KEY_ENVS[provider_cfg["type"]]

    def validate_credentials(self):
        """Raise MissingCredentialError if any provider used by a task has no API key."""
        used = {task_cfg["provider"] for task_cfg in self.config["tasks"].values()}
        missing = []
        for provider_name in sorted(used):
            env_name = self.credential_env(provider_name)
            if env_name and not getenv(env_name):
                missing.append(env_name)
        if missing:
            raise MissingCredentialError(f"{', '.join(sorted(set(missing)))} is not set")

    def _get_provider(self, provider_name: str):
        with self._lock:
            if provider_name in self._providers:
                return self._providers[provider_name]
            if provider_name not in self.config['providers']:
                raise ValueError(f"Unknown provider: {provider_name}")

            provider_cfg = self.config["providers"][provider_name]
            provider_type = provider_cfg["type"]
            settings = provider_cfg.get("settings") or {}

            # Built under the lock so concurrent first requests share one client
            if provider_type == Provider.GEMINI.value:
                provider = GeminiProvider(**settings)
            elif provider_type == Provider.OPENAI.value:
                provider = OpenAIProvider(**settings)
            else:
                raise ValueError(f"Unknown provider type: {provider_type}")
            self._providers[provider_name] = provider
        logger.info(f"initialized provider: {provider_name}")
        return provider

    def generate(self, task: str, prompt: Optional[str] = None, parts: Optional[List[InlinePart]] = None, **params_override) -> ModelResponse:
        start_time = time.perf_counter()
        task_cfg = self.task_config(task)
        parts = list(parts or [])

        try:
            prompt_config = self.prompts.load_prompt(task_cfg.prompt_ref)
            messages = self.prompts.render(task_cfg.prompt_ref, {"prompt": prompt or ""})

            params = {**task_cfg.params, **params_override}
            if task_cfg.timeout:
                # Ensure custom timeout in params_override takes precedence
                params.setdefault("timeout", task_cfg.timeout)

            request = GenerateRequest(
                model=task_cfg.model,
                messages=messages,
                parts=parts,
                params=params,
                stop=prompt_config.stop_sequences,
            )

            provider = self._get_provider(task_cfg.provider)
            response = provider.generate(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self._track_stats(task, elapsed_ms, success=False)
            raise
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self._track_stats(task, elapsed_ms, success=True)
        logger.info(f"task '{task}' completed in {elapsed_ms:.0f}ms ({len(parts)} inline parts)")
        return response

    def _track_stats(self, task: str, latency_ms: float, success: bool):
        with self._lock:
            if task not in self._stats:
                self._stats[task] = {
                    'total_calls': 0,
                    'successful_calls': 0,
                    'total_latency_ms': 0
                }

            stats = self._stats[task]
            stats['total_calls'] += 1
            if success:
                stats['successful_calls'] += 1
                stats['total_latency_ms'] += latency_ms

    def get_stats(self, task: Optional[str] = None) -> Dict:
        """Snapshot of the call counters, safe to read while requests are running."""
        with self._lock:
            if task:
                return dict(self._stats.get(task, {}))
            return {name: dict(stats) for name, stats in self._stats.items()}

    def cleanup(self):
        with self._lock:
            providers = list(self._providers.items())
            self._providers.clear()

        for name, provider in providers:
            if hasattr(provider, 'cleanup'):
                try:
                    provider.cleanup()
                    logger.info(f"Cleaned up provider: {name}")
                except Exception as e:
                    logger.error(f"Cleanup failed for {name}: {e}")

    @contextmanager
    def session(self):
        try:
            yield self
        finally:
            self.cleanup()

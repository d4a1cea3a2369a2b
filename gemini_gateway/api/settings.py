"""
Server settings resolved from the ``server`` section of the config file.

Environment variables take precedence over the file so that deployments can
change the listening port or upload directory without editing YAML:

- ``PORT`` / ``HOST``: listening address
- ``UPLOAD_DIR``: where uploads are staged while a request is processed
- ``GATEWAY_CONFIG``: alternate config file path (read by ``config_path()``)
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from gemini_gateway.models.manager import DEFAULT_CONFIG_PATH

DEFAULT_PORT = 3000


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    upload_dir: Path = Path("uploads")
    log_level: str = "info"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def config_path() -> Path:
    """Config file to load, honouring ``GATEWAY_CONFIG``."""
    return Path(os.getenv("GATEWAY_CONFIG") or DEFAULT_CONFIG_PATH)


def load_config_file(path: Path) -> Dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_server_settings(config: Optional[Dict[str, Any]] = None) -> ServerSettings:
    server_cfg = (config or {}).get("server") or {}

    port = os.getenv("PORT") or server_cfg.get("port") or DEFAULT_PORT
    try:
        port = int(port)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid port: {port!r}")

    upload_dir = Path(os.getenv("UPLOAD_DIR") or server_cfg.get("upload_dir") or "uploads")
    if not upload_dir.is_absolute():
        upload_dir = Path.cwd() / upload_dir

    return ServerSettings(
        host=os.getenv("HOST") or server_cfg.get("host") or "0.0.0.0",
        port=port,
        upload_dir=upload_dir,
        log_level=str(server_cfg.get("log_level") or "info"),
        cors_origins=list(server_cfg.get("cors_origins") or ["*"]),
    )

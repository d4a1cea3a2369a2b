"""
Accessors for the objects created by the application lifespan.

The model manager and server settings are built once at startup and stored in
``app_state``; routes receive them through these dependency functions so tests
can swap them out with ``app.dependency_overrides``.
"""

from gemini_gateway.models.manager import ModelManager
from ..settings import ServerSettings


def get_model_manager() -> ModelManager:
    """FastAPI dependency to get the model manager from app state."""
    from ..main import app_state
    return app_state["model_manager"]

def get_server_settings() -> ServerSettings:
    """FastAPI dependency to get the server settings from app state."""
    from ..main import app_state
    return app_state["settings"]

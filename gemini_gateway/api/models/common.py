"""
Common API models used across different endpoints.

These models represent shared concepts like errors and health status.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict

class ErrorResponse(BaseModel):
    """Error body returned with 4xx and 5xx responses."""
    error: str = Field(..., description="Error message")

class HealthStatus(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Uptime in seconds")
    tasks: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Per-task call statistics")

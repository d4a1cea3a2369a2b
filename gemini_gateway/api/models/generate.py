"""
API models for the generation endpoints.

File endpoints take multipart form data, so only the JSON text endpoint has a
request model; every endpoint shares the same response model.
"""

from pydantic import BaseModel, Field
from typing import Optional

class GenerateTextRequest(BaseModel):
    """Request for plain text generation."""
    # Optional here so that a missing prompt is reported as a 400 by the route
    prompt: Optional[str] = Field(None, description="Instruction text sent to the model")

    class Config:
        json_schema_extra = {
            "example": {
                "prompt": "Write a haiku about the sea."
            }
        }

class GenerateResponse(BaseModel):
    """Generated text returned by every generation endpoint."""
    output: str = Field(..., description="Text generated by the model")

    class Config:
        json_schema_extra = {
            "example": {
                "output": "Waves fold into foam,\nsalt wind carries gull voices,\nthe tide keeps its time."
            }
        }

"""
Pydantic models for API request/response schemas.

These models define the shape of data that flows between clients and the gateway.
They are separate from the provider types to maintain clear API boundaries.
"""

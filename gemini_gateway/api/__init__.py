"""
FastAPI application layer for the Gemini gateway.

This module exposes HTTP endpoints that forward text prompts and uploaded
media (images, documents, audio) to the configured generative model.
"""

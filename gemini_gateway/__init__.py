"""Gemini gateway: HTTP front end for a generative AI model."""

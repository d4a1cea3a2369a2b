"""
FastAPI dependencies for request processing.

Dependencies provide reusable logic that can be injected into API endpoints,
such as the model manager, server settings and temporary upload storage.
"""

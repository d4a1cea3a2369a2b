#!/usr/bin/env python3
"""
Server launcher for the Gemini gateway.

Loads ``.env``, checks that every provider credential is present and exits
with status 1 before binding the port if one is missing.
"""

import logging
import sys

import uvicorn
from dotenv import load_dotenv

from gemini_gateway.api.settings import config_path, load_server_settings
from gemini_gateway.models.manager import ModelManager
from gemini_gateway.models.providers.base import MissingCredentialError


def main() -> int:
    load_dotenv()

    manager = ModelManager(config_path=config_path())
    settings = load_server_settings(manager.config)
    logging.basicConfig(level=settings.log_level.upper(), format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        manager.validate_credentials()
    except MissingCredentialError as e:
        print(f"Error: {e}. Set it in the environment or in a .env file.", file=sys.stderr)
        return 1

    print("Starting Gemini gateway")
    print(f"Config: {manager.config_path}")
    print(f"Upload dir: {settings.upload_dir}")
    print(f"API documentation at: http://localhost:{settings.port}/docs")
    print("\n" + "="*50 + "\n")

    uvicorn.run(
        "gemini_gateway.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Name: API ASGI Entrypoint (account_lifecycle.main)

Responsibilities:
  - Re-export the FastAPI app for ASGI servers and tooling
  - Keep the import path used by uvicorn stable (account_lifecycle.main:app)

Notes/Constraints:
  - No configuration or IO here
"""

from account_lifecycle.api.main import app

__all__ = ["app"]

"""
App assembly entry point.

Re-exports the FastAPI `app` from `registry.api.main` for `uvicorn app:app`.
"""

from registry.api.main import app  # noqa: F401

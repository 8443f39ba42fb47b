"""HTTP API for hackrank (FastAPI)."""

from hackrank.api.server import create_app

__all__ = ["create_app"]

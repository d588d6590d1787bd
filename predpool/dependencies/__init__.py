"""FastAPI dependencies for the prediction-pool API."""

from .auth import require_admin_key

__all__ = ["require_admin_key"]

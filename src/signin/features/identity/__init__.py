"""Sign in with Apple / Google endpoints."""

from src.signin.features.identity.handlers import router

__all__ = ["router"]

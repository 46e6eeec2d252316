"""Email/password endpoints."""

from src.signin.features.password.handlers import router

__all__ = ["router"]

"""Shared services module for external integrations."""

from src.signin.services.analytics.posthog import PostHogService

__all__ = [
    "PostHogService",
]

"""API routers for secretforge."""

from secretforge.api.routers import cache, health, metrics, secrets

__all__ = ["cache", "health", "metrics", "secrets"]

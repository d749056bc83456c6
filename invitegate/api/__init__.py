"""API package exports."""

from invitegate.api.middleware import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]

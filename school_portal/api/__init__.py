"""API package exports."""

from school_portal.api.middleware import CorrelationIdMiddleware
from school_portal.api.routes import router

__all__ = ["router", "CorrelationIdMiddleware"]

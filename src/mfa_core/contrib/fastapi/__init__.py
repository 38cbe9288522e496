"""FastAPI integration for mfa-core."""

from .router import create_auth_router, request_context_from, translate_errors

__all__: list[str] = [
    "create_auth_router",
    "request_context_from",
    "translate_errors",
]

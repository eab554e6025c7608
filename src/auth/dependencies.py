"""
Auth wiring

Builds auth components from settings and exposes them to routes as
FastAPI dependencies. Instances live on app.state; nothing here is a
module-level singleton.
"""

from datetime import timedelta

from fastapi import Request

from core.config import Settings

from .gateway import AuthGateway
from .rate_limiter import RateLimiter
from .token_codec import TokenCodec


def create_auth_gateway(settings: Settings) -> AuthGateway:
    """Build the gateway with the validation-attempt limiter."""
    codec = TokenCodec(
        rotation_threshold=timedelta(hours=settings.token_rotation_threshold_hours),
        default_ttl=timedelta(hours=settings.token_ttl_hours),
    )
    limiter = RateLimiter(
        max_attempts=settings.validation_max_attempts,
        window_seconds=settings.validation_window_seconds,
        name="validation",
    )
    return AuthGateway(codec=codec, limiter=limiter)


def create_request_limiter(settings: Settings) -> RateLimiter:
    """Build the coarser limiter guarding the image endpoint itself."""
    return RateLimiter(
        max_attempts=settings.request_max_attempts,
        window_seconds=settings.request_window_seconds,
        name="request",
    )


def get_auth_gateway(request: Request) -> AuthGateway:
    return request.app.state.auth_gateway


def get_request_limiter(request: Request) -> RateLimiter:
    return request.app.state.request_limiter

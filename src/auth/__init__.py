"""
Authentication Module

2-Layer Security System:
1. Rate Limiting - Per-device fixed-window limits, checked first
2. HMAC Token Verification - Signed, device-bound, expiring tokens

Unverified token inspection lives in auth.diagnostics and is intentionally
not exported here.
"""

from .dependencies import (
    create_auth_gateway,
    create_request_limiter,
    get_auth_gateway,
    get_request_limiter,
)
from .gateway import AuthDecision, AuthGateway, AuthStatus, DenyReason
from .rate_limiter import RateLimiter, RateLimitEntry
from .token_codec import (
    DEFAULT_TOKEN_TTL,
    ROTATION_THRESHOLD,
    EncodingError,
    TokenCodec,
    TokenPayload,
    ValidationResult,
)

__all__ = [
    "AuthDecision",
    "AuthGateway",
    "AuthStatus",
    "DenyReason",
    "RateLimiter",
    "RateLimitEntry",
    "TokenCodec",
    "TokenPayload",
    "ValidationResult",
    "EncodingError",
    "DEFAULT_TOKEN_TTL",
    "ROTATION_THRESHOLD",
    "create_auth_gateway",
    "create_request_limiter",
    "get_auth_gateway",
    "get_request_limiter",
]

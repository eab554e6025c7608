"""
Auth Gateway

Composes the rate limiter and the token codec into a single
admit/deny decision for a screenshot request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.logger import get_logger

from .rate_limiter import RateLimiter
from .token_codec import TokenCodec, ValidationResult

logger = get_logger(__name__)


class AuthStatus(str, Enum):
    ADMIT = "admit"
    DENY = "deny"


class DenyReason(str, Enum):
    RATE_LIMITED = "rate_limited"
    # Malformed, forged, mismatched and expired tokens all map here
    INVALID_TOKEN = "invalid_token"


@dataclass(frozen=True)
class AuthDecision:
    """Result of AuthGateway.authorize()."""

    status: AuthStatus
    rotate: bool = False
    reason: Optional[DenyReason] = None
    token_info: Optional[ValidationResult] = None

    @classmethod
    def admit(cls, rotate: bool, token_info: ValidationResult) -> "AuthDecision":
        return cls(status=AuthStatus.ADMIT, rotate=rotate, token_info=token_info)

    @classmethod
    def deny(cls, reason: DenyReason) -> "AuthDecision":
        return cls(status=AuthStatus.DENY, reason=reason)

    @property
    def admitted(self) -> bool:
        return self.status is AuthStatus.ADMIT


class AuthGateway:
    """
    Entry point for request authorization.

    Rate limiting runs before any cryptographic work so a flood against one
    device key cannot force unbounded HMAC computation.
    """

    def __init__(self, codec: Optional[TokenCodec] = None, limiter: Optional[RateLimiter] = None):
        self.codec = codec if codec is not None else TokenCodec()
        self.limiter = limiter if limiter is not None else RateLimiter()

    def authorize(self, token: Optional[str], device_id: str, secret: str) -> AuthDecision:
        """
        Decide whether a request for a device's screenshot is allowed.

        Args:
            token: Bearer token from the request
            device_id: Device id from the request path
            secret: Shared HMAC secret

        Returns:
            Admit (with rotation hint) or Deny (with reason)
        """
        if not self.limiter.is_allowed(device_id):
            return AuthDecision.deny(DenyReason.RATE_LIMITED)

        token_info = self.codec.decode_and_verify(token, device_id, secret)
        if token_info is None:
            return AuthDecision.deny(DenyReason.INVALID_TOKEN)

        rotate = self.should_rotate(token_info)
        if rotate:
            logger.info(f"Token rotation recommended for device {device_id}")

        return AuthDecision.admit(rotate=rotate, token_info=token_info)

    def should_rotate(self, token_info: Optional[ValidationResult]) -> bool:
        return self.codec.should_rotate(token_info)

    def retry_after(self, device_id: str) -> int:
        return self.limiter.retry_after(device_id)

    def sweep(self) -> int:
        return self.limiter.sweep()

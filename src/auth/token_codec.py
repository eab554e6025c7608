"""
Token Codec

Encodes, signs, decodes and verifies device access tokens.

Wire format:
    token_<base64(payload_json)>_<hex(hmac_sha256(secret, base64_segment))>

The signature covers the exact ASCII bytes of the base64 segment, never the
decoded payload, so two issuers serializing the same claims differently both
verify. Verification never raises on caller input: every failure is logged
with a short reason and reported as None.
"""

import base64
import binascii
import hashlib
import hmac
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.logger import get_logger, log_token

logger = get_logger(__name__)

TOKEN_PREFIX = "token"
TOKEN_SEPARATOR = "_"

# Lifetime of freshly issued tokens
DEFAULT_TOKEN_TTL = timedelta(hours=24)
# Recommend re-issuance once a token has less than this left
ROTATION_THRESHOLD = timedelta(hours=6)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


class EncodingError(ValueError):
    """Raised when a payload cannot be turned into a token."""


class TokenPayload(BaseModel):
    """Signed claims carried inside a token."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    device_id: str = Field(min_length=1)
    issued_at: datetime
    expires_at: datetime

    @field_validator("issued_at", "expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps from older issuers are UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a successful verification."""

    device_id: str
    issued_at: datetime
    expires_at: datetime
    age_seconds: int


def split_token(token: str) -> Optional[tuple[str, str]]:
    """
    Split a token into its payload and signature segments.

    Returns:
        (payload_segment, signature) or None if the shape is wrong
    """
    parts = token.split(TOKEN_SEPARATOR)
    if len(parts) != 3 or parts[0] != TOKEN_PREFIX:
        return None
    return parts[1], parts[2]


def decode_payload_segment(segment: str) -> bytes:
    """Base64-decode a payload segment, rejecting anything outside the alphabet."""
    return base64.b64decode(segment.encode("ascii"), validate=True)


def sign(payload_segment: str, secret: str) -> str:
    """Hex HMAC-SHA256 of the payload segment bytes."""
    return hmac.new(
        secret.encode("utf-8"),
        payload_segment.encode("ascii"),
        hashlib.sha256,
    ).hexdigest()


class TokenCodec:
    """
    Issues and verifies HMAC-signed device tokens.

    The clock is injected so expiry and rotation decisions can be tested
    deterministically. The codec holds no secret; it is passed per call.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        rotation_threshold: timedelta = ROTATION_THRESHOLD,
        default_ttl: timedelta = DEFAULT_TOKEN_TTL,
    ):
        self._clock = clock
        self.rotation_threshold = rotation_threshold
        self.default_ttl = default_ttl

    def now(self) -> datetime:
        return self._clock()

    # ==================== Encoding ====================

    def encode(self, payload: Union[TokenPayload, Mapping[str, Any]], secret: str) -> str:
        """
        Serialize and sign a payload.

        Args:
            payload: TokenPayload or a mapping with its fields
            secret: Shared HMAC secret

        Returns:
            Token string in wire format

        Raises:
            EncodingError: If payload fields are missing or the secret is empty
        """
        if not secret:
            raise EncodingError("secret is required")

        if not isinstance(payload, TokenPayload):
            try:
                payload = TokenPayload.model_validate(payload)
            except ValidationError as e:
                raise EncodingError(f"invalid token payload: {e.error_count()} field error(s)") from e

        # Sorted keys give one canonical byte form for identical claims
        payload_json = orjson.dumps(
            payload.model_dump(),
            option=orjson.OPT_SORT_KEYS | orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC,
        )
        payload_segment = base64.b64encode(payload_json).decode("ascii")
        signature = sign(payload_segment, secret)

        return TOKEN_SEPARATOR.join((TOKEN_PREFIX, payload_segment, signature))

    def issue(self, device_id: str, secret: str, ttl: Optional[timedelta] = None) -> str:
        """Mint a token for a device, valid from now for `ttl` (default_ttl if omitted)."""
        if ttl is None:
            ttl = self.default_ttl
        issued_at = self.now()
        token = self.encode(
            {"device_id": device_id, "issued_at": issued_at, "expires_at": issued_at + ttl},
            secret,
        )
        log_token(logger, device_id, "issue", True)
        return token

    # ==================== Verification ====================

    def decode_and_verify(
        self,
        token: Optional[str],
        expected_device_id: Optional[str],
        secret: Optional[str],
    ) -> Optional[ValidationResult]:
        """
        Verify a token for a device.

        Checks run in a fixed order and stop at the first failure:
        parameters, format, payload decode, device binding, signature, expiry.

        Args:
            token: Token presented by the client
            expected_device_id: Device the request is for
            secret: Shared HMAC secret

        Returns:
            ValidationResult if the token is valid, otherwise None
        """
        try:
            return self._verify(token, expected_device_id, secret)
        except Exception as e:
            logger.error(f"Token validation error for device {expected_device_id}: {type(e).__name__}")
            return None

    def _verify(
        self,
        token: Optional[str],
        expected_device_id: Optional[str],
        secret: Optional[str],
    ) -> Optional[ValidationResult]:
        if not token or not expected_device_id or not secret:
            log_token(logger, expected_device_id, "validate", False, "missing parameters")
            return None

        segments = split_token(token)
        if segments is None:
            log_token(logger, expected_device_id, "validate", False, "invalid format")
            return None
        payload_segment, signature = segments

        try:
            payload = TokenPayload.model_validate_json(
                decode_payload_segment(payload_segment),
                strict=True,
            )
        except (binascii.Error, ValueError):
            log_token(logger, expected_device_id, "validate", False, "payload decode failed")
            return None

        if payload.device_id != expected_device_id:
            log_token(logger, expected_device_id, "validate", False, "device_id mismatch")
            return None

        expected_signature = sign(payload_segment, secret)
        if not hmac.compare_digest(signature.encode("utf-8"), expected_signature.encode("ascii")):
            log_token(logger, expected_device_id, "validate", False, "signature invalid")
            return None

        now = self.now()
        # Invalid at the expiry instant itself, not only after it
        if now >= payload.expires_at:
            age_minutes = round((now - payload.expires_at).total_seconds() / 60)
            log_token(logger, expected_device_id, "validate", False, f"expired {age_minutes}m ago")
            return None

        age_seconds = round((now - payload.issued_at).total_seconds())
        log_token(logger, expected_device_id, "validate", True)

        return ValidationResult(
            device_id=payload.device_id,
            issued_at=payload.issued_at,
            expires_at=payload.expires_at,
            age_seconds=age_seconds,
        )

    # ==================== Rotation ====================

    def should_rotate(self, result: Optional[ValidationResult]) -> bool:
        """
        Whether a fresh token should be issued.

        True when there is no valid result, or the token expires within the
        rotation threshold.
        """
        if result is None:
            return True
        return result.expires_at - self.now() < self.rotation_threshold

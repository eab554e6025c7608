"""
Token Diagnostics

Reads token claims WITHOUT checking the signature or expiry.

Anything returned here is attacker-controlled and must only be used for
logging and debugging. Authorization goes through AuthGateway; this module
is deliberately not exported from the auth package and nothing on the
authorization path imports it.
"""

from typing import Any, Dict, Optional

import orjson

from .token_codec import decode_payload_segment, split_token


def peek_unverified(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Extract token claims without validation.

    Args:
        token: Token string

    Returns:
        Dict with device_id, issued_at and expires_at as found in the token
        (missing fields are None), or None if the token is unparseable
    """
    if not token:
        return None

    segments = split_token(token)
    if segments is None:
        return None

    try:
        claims = orjson.loads(decode_payload_segment(segments[0]))
    except ValueError:
        return None

    if not isinstance(claims, dict):
        return None

    return {
        "device_id": claims.get("device_id"),
        "issued_at": claims.get("issued_at"),
        "expires_at": claims.get("expires_at"),
    }

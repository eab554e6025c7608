"""
Screenshot Router

Serves per-device screenshots behind bearer-token authorization.

GET /trmnl/screenshot/{device_id}
Authorization: Bearer token_<base64_payload>_<hex_signature>
"""

import re
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import ORJSONResponse

from auth import AuthGateway, DenyReason, RateLimiter, get_auth_gateway, get_request_limiter
from core.config import Settings
from core.logger import get_logger
from services import ScreenshotStorage, is_valid_device_id

logger = get_logger(__name__)

router = APIRouter(tags=["screenshot"])

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> ScreenshotStorage:
    return request.app.state.storage


def extract_bearer_token(authorization: str) -> str | None:
    """Pull the token out of an Authorization header value."""
    match = _BEARER_RE.match(authorization.strip())
    return match.group(1).strip() if match else None


def _error(status_code: int, message: str, **extra) -> ORJSONResponse:
    return ORJSONResponse(status_code=status_code, content={"error": message, **extra})


def _too_many_requests(retry_after: int) -> ORJSONResponse:
    response = _error(429, "Too many requests", retry_after=retry_after)
    response.headers["Retry-After"] = str(retry_after)
    return response


@router.get("/trmnl/screenshot/{device_id}")
def get_screenshot(
    device_id: str,
    request: Request,
    gateway: AuthGateway = Depends(get_auth_gateway),
    request_limiter: RateLimiter = Depends(get_request_limiter),
    storage: ScreenshotStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """
    Serve the latest screenshot for a device.

    Responses:
        200: PNG image (X-Token-Rotate: true when a new token should be issued)
        400: device_id is not a valid identifier
        401: Missing, invalid or expired token
        404: No screenshot stored for the device
        429: Too many requests for the device
    """
    if not is_valid_device_id(device_id):
        return _error(400, "Invalid device_id")

    if not request_limiter.is_allowed(device_id):
        return _too_many_requests(request_limiter.retry_after(device_id))

    token = extract_bearer_token(request.headers.get("authorization", ""))
    if not token:
        logger.warning(f"Missing or invalid authorization for device {device_id}")
        response = _error(401, "Missing or invalid authorization")
        response.headers["WWW-Authenticate"] = "Bearer"
        return response

    decision = gateway.authorize(token, device_id, settings.token_secret)
    if not decision.admitted:
        if decision.reason is DenyReason.RATE_LIMITED:
            return _too_many_requests(gateway.retry_after(device_id))

        logger.warning(f"Token validation failed for device {device_id}")
        response = _error(401, "Invalid or expired token")
        response.headers["WWW-Authenticate"] = "Bearer"
        return response

    try:
        screenshot = storage.get_screenshot(device_id)
    except OSError as e:
        logger.error(f"Failed to read screenshot for device {device_id}: {e}")
        return _error(500, "Internal server error")

    if screenshot is None:
        logger.warning(f"Screenshot not found for device {device_id}")
        return _error(404, "Screenshot not found")

    headers = {
        "Cache-Control": "no-cache, no-store, must-revalidate",
        "Pragma": "no-cache",
        "Expires": "0",
        "X-Device-ID": device_id,
        "X-Served-At": datetime.now(timezone.utc).isoformat(),
    }
    if decision.rotate:
        headers["X-Token-Rotate"] = "true"

    logger.info(
        f"Screenshot served for device {device_id} "
        f"(size={len(screenshot)}, token_age_seconds={decision.token_info.age_seconds})"
    )
    return Response(content=screenshot, media_type="image/png", headers=headers)

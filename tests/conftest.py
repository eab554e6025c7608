# tests/conftest.py
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from auth import AuthGateway, RateLimiter, TokenCodec
from core.config import Settings
from main import create_app

SECRET = "0123456789abcdef0123456789abcdef"
DEVICE_ID = "test_device_1"
NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class FakeClock:
    """Settable wall clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Settable monotonic clock in seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def iso_z(value: datetime) -> str:
    """Format like JavaScript's Date.toISOString()."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def make_token(
    device_id: str = DEVICE_ID,
    secret: str = SECRET,
    *,
    issued_at: datetime = NOW,
    expires_in: timedelta = timedelta(hours=24),
    payload: dict[str, Any] | None = None,
) -> str:
    """Build a token the way an external issuer would, independent of TokenCodec."""
    if payload is None:
        payload = {
            "device_id": device_id,
            "issued_at": iso_z(issued_at),
            "expires_at": iso_z(issued_at + expires_in),
        }
    payload_b64 = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    signature = hmac.new(secret.encode("utf-8"), payload_b64.encode("ascii"), hashlib.sha256).hexdigest()
    return f"token_{payload_b64}_{signature}"


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    # setup_logging() replaces root handlers; keep tests isolated from that
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture()
def codec(clock: FakeClock) -> TokenCodec:
    return TokenCodec(clock=clock)


@pytest.fixture()
def limiter(monotonic: FakeMonotonic) -> RateLimiter:
    return RateLimiter(max_attempts=5, window_seconds=1.0, clock=monotonic)


@pytest.fixture()
def gateway(codec: TokenCodec, monotonic: FakeMonotonic) -> AuthGateway:
    return AuthGateway(codec=codec, limiter=RateLimiter(max_attempts=10, window_seconds=60, clock=monotonic))


@pytest.fixture()
def screenshot_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "screenshots"
    directory.mkdir()
    return directory


@pytest.fixture()
def settings(tmp_path: Path, screenshot_dir: Path) -> Settings:
    return Settings(
        token_secret=SECRET,
        data_path=str(tmp_path),
        validation_max_attempts=3,
        validation_window_seconds=60,
        request_max_attempts=100,
        request_window_seconds=60,
        rate_limit_sweep_interval_seconds=0,
    )


@pytest.fixture()
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    yield TestClient(app)

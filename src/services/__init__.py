"""
Services Package

Contains service layer classes for:
- Screenshot storage lookup
"""

from services.storage_service import ScreenshotStorage, is_valid_device_id

__all__ = [
    "ScreenshotStorage",
    "is_valid_device_id",
]

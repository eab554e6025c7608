"""
Screenshot Storage Service

Read-only access to rendered screenshots on disk.
Files are written by the capture pipeline as <data_path>/screenshots/<device_id>.png.
"""

import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.config import Settings
from core.logger import get_logger

logger = get_logger(__name__)

# Device ids become file names; keep them to a single safe path component
_DEVICE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")


def is_valid_device_id(device_id: str) -> bool:
    return bool(_DEVICE_ID_RE.match(device_id)) and ".." not in device_id


class ScreenshotStorage:
    """Looks up the latest screenshot for a device."""

    def __init__(self, settings: Settings):
        self.screenshot_dir: Path = settings.screenshot_dir
        self.stale_seconds = settings.screenshot_stale_minutes * 60

    @property
    def is_available(self) -> bool:
        return self.screenshot_dir.is_dir()

    def path_for(self, device_id: str) -> Path:
        if not is_valid_device_id(device_id):
            raise ValueError(f"Invalid device_id: {device_id!r}")
        return self.screenshot_dir / f"{device_id}.png"

    def get_screenshot(self, device_id: str) -> Optional[bytes]:
        """
        Read the screenshot for a device.

        Args:
            device_id: Device identifier

        Returns:
            PNG bytes, or None if there is no screenshot yet

        Raises:
            ValueError: If device_id is not a safe file name
        """
        path = self.path_for(device_id)
        if not path.is_file():
            logger.debug(f"Screenshot not found for device {device_id}")
            return None

        age_seconds = time.time() - path.stat().st_mtime
        if age_seconds > self.stale_seconds:
            logger.warning(f"Screenshot is stale for device {device_id} ({round(age_seconds / 60)}m old)")

        data = path.read_bytes()
        logger.debug(f"Screenshot retrieved for device {device_id} ({len(data)} bytes)")
        return data

    def list_screenshots(self) -> List[Dict[str, Any]]:
        if not self.is_available:
            return []

        screenshots = []
        for path in sorted(self.screenshot_dir.glob("*.png")):
            stat = path.stat()
            screenshots.append(
                {
                    "device_id": path.stem,
                    "size": stat.st_size,
                    "modified_at": stat.st_mtime,
                }
            )
        return screenshots

    def get_stats(self) -> Dict[str, Any]:
        """Aggregate counts and sizes of stored screenshots."""
        screenshots = self.list_screenshots()
        total_size = sum(s["size"] for s in screenshots)
        count = len(screenshots)

        return {
            "count": count,
            "total_size": total_size,
            "average_size": round(total_size / count) if count else 0,
            "screenshots": screenshots,
        }

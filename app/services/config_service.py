"""
Configuration service for reading settings from environment and runtime overrides.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, List, Optional

logger = logging.getLogger("app.config")


class ConfigService:
    """Service for managing application configuration."""

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def get_setting(self, key: str, default: Any = None) -> Any:
        """
        Get setting value from runtime overrides or environment.

        Priority: Runtime override > Environment > Default
        """
        if key in self._cache:
            return self._cache[key]

        value = os.getenv(key, default)

        self._cache[key] = value

        logger.debug(f"Retrieved setting {key}={value}")
        return value

    def set_setting(self, key: str, value: Any) -> None:
        """Override a setting for the lifetime of the process."""
        self._cache[key] = value
        logger.info(f"Set setting {key}")

    def reset(self) -> None:
        """Drop cached values and overrides so the environment is read again."""
        self._cache.clear()

    def get_int(self, key: str, default: int) -> int:
        value = self.get_setting(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid integer for {key}: {value}, using {default}")
            return default

    def get_float(self, key: str, default: float) -> float:
        value = self.get_setting(key, default)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid number for {key}: {value}, using {default}")
            return default

    def get_list(self, key: str) -> Optional[List[str]]:
        """Comma separated setting as a list, None when unset or blank."""
        value = self.get_setting(key)
        if not value:
            return None
        items = [item.strip() for item in str(value).split(",") if item.strip()]
        return items or None

    def now(self) -> datetime:
        """
        Get current time (real or fake based on APP_NOW_MODE).

        Returns:
            Current datetime (real or fake)
        """
        now_mode = self.get_setting("APP_NOW_MODE", "real")

        if now_mode == "fake":
            fake_now_str = self.get_setting("APP_FAKE_NOW")
            if fake_now_str:
                try:
                    fake_date = datetime.strptime(fake_now_str, "%Y-%m-%d").replace(tzinfo=timezone.utc)
                    logger.debug(f"Using fake time: {fake_date}")
                    return fake_date
                except ValueError:
                    logger.warning(f"Invalid APP_FAKE_NOW format: {fake_now_str}, using real time")

        return datetime.now(timezone.utc)

    def is_fake_time_enabled(self) -> bool:
        """Check if fake time mode is enabled."""
        return self.get_setting("APP_NOW_MODE", "real") == "fake"


# Global instance
config_service = ConfigService()

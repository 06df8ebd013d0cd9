"""
Alert Settings Provider
Cached access to the global alert tunables with explicit reload and defaults.
"""

import logging
import threading
from typing import Optional

from .models import AlertSettings

logger = logging.getLogger(__name__)


class AlertSettingsProvider:
    """
    Serves AlertSettings to the evaluation path without a query per sample.

    A missing row, or a failed read, falls back to ``defaults``.

    Usage:
        provider = AlertSettingsProvider(AlertSettingsStore(storage))
        provider.get().consecutive_count
        provider.update(cooldown_minutes=5)
    """

    def __init__(self, store=None, defaults: AlertSettings = None):
        self._store = store
        self._defaults = defaults or AlertSettings()
        self._cached: Optional[AlertSettings] = None
        self._lock = threading.Lock()

    @property
    def defaults(self) -> AlertSettings:
        return self._defaults

    def get(self) -> AlertSettings:
        cached = self._cached
        if cached is not None:
            return cached
        return self.reload()

    def reload(self) -> AlertSettings:
        """Re-read the stored row, falling back to defaults"""
        settings = None
        if self._store is not None:
            try:
                settings = self._store.load()
            except Exception:
                # Not cached: the next get() retries the read
                logger.exception("Failed to load alert settings, using defaults")
                return self._defaults

        if settings is None:
            settings = self._defaults

        with self._lock:
            self._cached = settings
        return settings

    def update(self, **changes) -> AlertSettings:
        """Validate, persist and cache new values. Unspecified fields keep their current value."""
        changes = {k: v for k, v in changes.items() if v is not None}
        settings = self.get().with_changes(**changes)

        if self._store is not None:
            settings = self._store.save(settings)

        with self._lock:
            self._cached = settings
        logger.info(
            "Alert settings updated: consecutive_count=%s cooldown_minutes=%s",
            settings.consecutive_count, settings.cooldown_minutes,
        )
        return settings

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None

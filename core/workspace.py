"""Workspace root, user settings, timezone and path helpers for ZenPlaner."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.errors import PersistenceFailure
from core.fileio import read_yaml, write_yaml_atomic

logger = logging.getLogger(__name__)

THEMES = {"forest", "ocean", "sand"}
APPEARANCES = {"system", "light", "dark"}


def workspace_root() -> Path:
    """Get the workspace root directory (contains planner/)."""
    return Path(
        os.environ.get("PLANNER_ROOT", str(Path.home() / "planner"))
    ).expanduser().resolve()


def configure_logging(level: str | None = None) -> None:
    """Install a stderr handler for the outer surfaces (API, TUI)."""
    name = (level or os.environ.get("ZENPLANER_LOG_LEVEL", "WARNING")).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ── Settings ──────────────────────────────────────────────────


@dataclass
class Settings:
    """User preferences consumed by the services.

    Only timezone, reflection_hour and notifications_enabled affect the
    core rules; the rest is carried for the surfaces.
    """

    timezone: str = "UTC"
    reflection_hour: int = 20
    quotes_enabled: bool = True
    haptics_enabled: bool = True
    notifications_enabled: bool = True
    theme: str = "forest"
    appearance: str = "system"

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()
        defaults = cls()
        tz = str(d.get("timezone", defaults.timezone))
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r in settings, using UTC", tz)
            tz = defaults.timezone
        try:
            hour = int(d.get("reflection_hour", defaults.reflection_hour))
        except (TypeError, ValueError):
            hour = defaults.reflection_hour
        if not 0 <= hour <= 23:
            hour = defaults.reflection_hour
        theme = str(d.get("theme", defaults.theme)).lower()
        appearance = str(d.get("appearance", defaults.appearance)).lower()
        return cls(
            timezone=tz,
            reflection_hour=hour,
            quotes_enabled=bool(d.get("quotes_enabled", True)),
            haptics_enabled=bool(d.get("haptics_enabled", True)),
            notifications_enabled=bool(d.get("notifications_enabled", True)),
            theme=theme if theme in THEMES else defaults.theme,
            appearance=appearance if appearance in APPEARANCES else defaults.appearance,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timezone": self.timezone,
            "reflection_hour": self.reflection_hour,
            "quotes_enabled": self.quotes_enabled,
            "haptics_enabled": self.haptics_enabled,
            "notifications_enabled": self.notifications_enabled,
            "theme": self.theme,
            "appearance": self.appearance,
        }

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_settings(root: Path | None = None) -> Settings:
    """Read planner/settings.yaml; unreadable files give the defaults."""
    try:
        return Settings.from_dict(read_yaml(settings_path(root)))
    except PersistenceFailure as e:
        logger.warning("Falling back to default settings: %s", e)
        return Settings()


def save_settings(settings: Settings, root: Path | None = None) -> None:
    write_yaml_atomic(settings_path(root), settings.to_dict())


def now_local(settings: Settings | None = None) -> datetime:
    """Get current datetime in the user's timezone."""
    tz = (settings or Settings()).tz
    return datetime.now(tz)


# ── Path helpers ──────────────────────────────────────────────

def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "planner" / "settings.yaml"


def tasks_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "planner" / "tasks.yaml"


def reflections_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "planner" / "reflections.json"


def reminders_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "planner" / "reminders.json"


def quotes_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "planner" / "quotes.yaml"


def hooks_config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "planner" / "hooks.yaml"

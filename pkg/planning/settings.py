# Planning board — settings
# Attribute bindings, week layout and board preferences. Loaded from
# planning.yaml; every change made through the store is written back.

import logging
import os
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "planboard" / "planning.yaml"


class ConfigError(Exception):
    """Raised when settings are invalid or the settings file is unreadable."""
    pass


def _is_int(value: Any) -> bool:
    # YAML true/false load as bool, which is an int subclass
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class SearchParameters:
    search_phrase: str = ""
    fuzzy_search: bool = False


@dataclass
class WipLimit:
    is_limited: bool = False
    daily_limit: int = 5


@dataclass
class PlanningSettings:
    """Everything the bucket generator and command engine read."""

    # Board preferences
    search: SearchParameters = field(default_factory=SearchParameters)
    hide_empty: bool = True
    wip_limit: WipLimit = field(default_factory=WipLimit)

    # Attribute bindings
    due_date_attribute: str = "due"
    completed_date_attribute: str = "completed"
    selected_attribute: str = "selected"
    started_attribute: str = "started"

    # Week layout
    first_weekday: int = 1          # ISO weekday, 1 = Monday
    show_week_ends: bool = True

    # Behavior
    track_start_time: bool = False

    def validate(self) -> "PlanningSettings":
        for name in (
            "due_date_attribute",
            "completed_date_attribute",
            "selected_attribute",
            "started_attribute",
        ):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{name} must be a non-empty string, got {value!r}")
        if not _is_int(self.first_weekday) or not 1 <= self.first_weekday <= 7:
            raise ConfigError(f"first_weekday must be between 1 and 7, got {self.first_weekday!r}")
        if not _is_int(self.wip_limit.daily_limit) or self.wip_limit.daily_limit < 0:
            raise ConfigError(
                f"wip_limit.daily_limit must be a non-negative integer, "
                f"got {self.wip_limit.daily_limit!r}"
            )
        flags = {
            "hide_empty": self.hide_empty,
            "show_week_ends": self.show_week_ends,
            "track_start_time": self.track_start_time,
            "wip_limit.is_limited": self.wip_limit.is_limited,
            "search.fuzzy_search": self.search.fuzzy_search,
        }
        for name, value in flags.items():
            if not isinstance(value, bool):
                raise ConfigError(f"{name} must be true or false, got {value!r}")
        if not isinstance(self.search.search_phrase, str):
            raise ConfigError(
                f"search.search_phrase must be a string, got {self.search.search_phrase!r}"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanningSettings":
        """Build settings from a mapping. Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}

        search = kwargs.get("search")
        if isinstance(search, dict):
            kwargs["search"] = SearchParameters(
                **{k: v for k, v in search.items() if k in ("search_phrase", "fuzzy_search")}
            )
        elif search is not None and not isinstance(search, SearchParameters):
            raise ConfigError(f"search must be a mapping, got {type(search).__name__}")

        wip = kwargs.get("wip_limit")
        if isinstance(wip, dict):
            kwargs["wip_limit"] = WipLimit(
                **{k: v for k, v in wip.items() if k in ("is_limited", "daily_limit")}
            )
        elif wip is not None and not isinstance(wip, WipLimit):
            raise ConfigError(f"wip_limit must be a mapping, got {type(wip).__name__}")

        return cls(**kwargs).validate()

    @classmethod
    def load(cls, path: Optional[str] = None) -> "PlanningSettings":
        """Load settings from YAML, falling back to defaults when the file is missing."""
        cfg_path = resolve_config_path(path)
        if not cfg_path.exists():
            logger.debug(f"No settings file at {cfg_path}, using defaults")
            return cls()
        try:
            with open(cfg_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read settings from {cfg_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {cfg_path} must contain a mapping")
        return cls.from_dict(data)

    def save(self, path: Optional[str] = None) -> None:
        cfg_path = resolve_config_path(path)
        cfg_path.parent.mkdir(parents=True, exist_ok=True)
        with open(cfg_path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)


def resolve_config_path(path: Optional[str] = None) -> Path:
    if path:
        return Path(path).expanduser()
    env = os.environ.get("PLANBOARD_CONFIG")
    if env:
        return Path(env).expanduser()
    return DEFAULT_CONFIG_PATH


class PlanningSettingsStore:
    """
    Holds the current settings and writes them back on every change.

    The board reads settings through get_settings() on each recompute;
    nothing else keeps a copy.
    """

    def __init__(self, path: Optional[str] = None, settings: Optional[PlanningSettings] = None):
        self.path = resolve_config_path(path)
        self._settings = settings if settings is not None else PlanningSettings.load(str(self.path))
        self._listeners: list = []

    def get_settings(self) -> PlanningSettings:
        return self._settings

    def subscribe(self, callback: Callable[[PlanningSettings], None]) -> None:
        self._listeners.append(callback)

    def set_settings(self, settings: PlanningSettings) -> None:
        settings.validate()
        self._settings = settings
        try:
            settings.save(str(self.path))
        except OSError as e:
            logger.error(f"Failed to save planning settings to {self.path}: {e}")
        for callback in self._listeners:
            try:
                callback(settings)
            except Exception as e:
                logger.error(f"Error in settings listener: {e}")

    def update(self, **changes: Any) -> PlanningSettings:
        """Apply top-level field changes and persist."""
        data = self._settings.to_dict()
        data.update(changes)
        settings = PlanningSettings.from_dict(data)
        self.set_settings(settings)
        return settings

    def decorate_setter_with_save(
        self, setter: Callable[[PlanningSettings], None]
    ) -> Callable[[PlanningSettings], None]:
        """Wrap a state setter so every call also persists the new settings."""
        def save_and_set(settings: PlanningSettings) -> None:
            setter(settings)
            self.set_settings(settings)
        return save_and_set

"""
Configuration loader for the Nirapod map controller.

Loads controller settings from a YAML file, applies environment overrides and
validates the result.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dateutil import tz

from nirapod_map.http_utils import RetryConfig
from nirapod_map.schemas import BoundingBox, RouteMode

# Whole-country extent; the map opens on this box and search is biased to it.
BANGLADESH_EXTENT = {
    "south_west": {"lat": 20.59, "lng": 88.01},
    "north_east": {"lat": 26.63, "lng": 92.68},
}

DEFAULTS: Dict[str, Any] = {
    "api_base_url": "http://localhost:8080",
    "geocoder_url": "https://nominatim.openstreetmap.org/search",
    "http_timeout_seconds": 15.0,
    "route_timeout_seconds": 30.0,
    "viewport_debounce_seconds": 0.25,
    "search_debounce_seconds": 0.3,
    "search_min_length": 2,
    "search_limit": 5,
    "search_country_codes": "bd",
    "route_mode": "drive",
    "center_zoom": 14,
    "local_timezone": "Asia/Dhaka",
    "default_viewport": BANGLADESH_EXTENT,
    "search_hint_box": BANGLADESH_EXTENT,
    "retry": {"max_retries": 1, "initial_delay": 0.5},
}


@dataclass
class MapSettings:
    """Validated controller settings."""
    api_base_url: str = DEFAULTS["api_base_url"]
    geocoder_url: str = DEFAULTS["geocoder_url"]
    http_timeout_seconds: float = DEFAULTS["http_timeout_seconds"]
    route_timeout_seconds: float = DEFAULTS["route_timeout_seconds"]
    viewport_debounce_seconds: float = DEFAULTS["viewport_debounce_seconds"]
    search_debounce_seconds: float = DEFAULTS["search_debounce_seconds"]
    search_min_length: int = DEFAULTS["search_min_length"]
    search_limit: int = DEFAULTS["search_limit"]
    search_country_codes: str = DEFAULTS["search_country_codes"]
    route_mode: RouteMode = RouteMode.DRIVE
    center_zoom: int = DEFAULTS["center_zoom"]
    local_timezone: str = DEFAULTS["local_timezone"]
    default_viewport: BoundingBox = field(
        default_factory=lambda: BoundingBox.model_validate(BANGLADESH_EXTENT)
    )
    search_hint_box: BoundingBox = field(
        default_factory=lambda: BoundingBox.model_validate(BANGLADESH_EXTENT)
    )
    retry: RetryConfig = field(default_factory=lambda: RetryConfig(max_retries=1, initial_delay=0.5))
    auth_token: Optional[str] = None


def get_config_path() -> Path:
    """Path of the controller YAML file (NIRAPOD_MAP_CONFIG overrides it)."""
    override = os.getenv("NIRAPOD_MAP_CONFIG")
    if override:
        return Path(override)
    backend_dir = Path(__file__).resolve().parent.parent
    return backend_dir / "config" / "map.yaml"


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config at {config_path}: expected a mapping at top level")
    return data


def _positive(raw: Dict[str, Any], key: str, allow_zero: bool = False) -> float:
    value = float(raw[key])
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"Config value '{key}' must be {'>= 0' if allow_zero else '> 0'}, got {value}")
    return value


def build_settings(raw: Dict[str, Any]) -> MapSettings:
    """
    Validate a raw settings mapping (defaults merged in) into MapSettings.

    Raises:
        ValueError: on unknown keys or invalid values
    """
    unknown = set(raw) - set(DEFAULTS) - {"auth_token"}
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    cfg = DEFAULTS.copy()
    cfg.update({k: v for k, v in raw.items() if v is not None})

    try:
        mode = RouteMode(str(cfg["route_mode"]).lower())
    except ValueError:
        raise ValueError(f"Config value 'route_mode' must be one of drive/walk, got {cfg['route_mode']!r}")

    min_length = int(cfg["search_min_length"])
    if min_length < 1:
        raise ValueError("Config value 'search_min_length' must be >= 1")

    search_limit = int(cfg["search_limit"])
    if search_limit < 1:
        raise ValueError("Config value 'search_limit' must be >= 1")

    zone_name = str(cfg["local_timezone"])
    if tz.gettz(zone_name) is None:
        raise ValueError(f"Config value 'local_timezone' is not a known time zone: {zone_name!r}")

    retry_raw = cfg["retry"] or {}
    retry = RetryConfig(
        max_retries=int(retry_raw.get("max_retries", 1)),
        initial_delay=float(retry_raw.get("initial_delay", 0.5)),
    )

    return MapSettings(
        api_base_url=str(cfg["api_base_url"]).rstrip("/"),
        geocoder_url=str(cfg["geocoder_url"]),
        http_timeout_seconds=_positive(cfg, "http_timeout_seconds"),
        route_timeout_seconds=_positive(cfg, "route_timeout_seconds"),
        viewport_debounce_seconds=_positive(cfg, "viewport_debounce_seconds", allow_zero=True),
        search_debounce_seconds=_positive(cfg, "search_debounce_seconds", allow_zero=True),
        search_min_length=min_length,
        search_limit=search_limit,
        search_country_codes=str(cfg["search_country_codes"]),
        route_mode=mode,
        center_zoom=int(cfg["center_zoom"]),
        local_timezone=zone_name,
        default_viewport=BoundingBox.model_validate(cfg["default_viewport"]),
        search_hint_box=BoundingBox.model_validate(cfg["search_hint_box"]),
        retry=retry,
        auth_token=cfg.get("auth_token"),
    )


def load_map_settings(config_path: Optional[Path] = None) -> MapSettings:
    """
    Load settings from YAML, then apply environment overrides.

    Expected structure (every key optional):

    api_base_url: "http://localhost:8080"
    viewport_debounce_seconds: 0.25
    search_debounce_seconds: 0.3
    route_mode: "drive"
    default_viewport:
      south_west: {lat: 20.59, lng: 88.01}
      north_east: {lat: 26.63, lng: 92.68}

    A missing file yields the built-in defaults.
    """
    raw = _read_yaml(config_path or get_config_path())

    env_overrides = {
        "api_base_url": os.getenv("NIRAPOD_API_URL"),
        "geocoder_url": os.getenv("NIRAPOD_GEOCODER_URL"),
        "auth_token": os.getenv("NIRAPOD_AUTH_TOKEN"),
    }
    raw.update({k: v for k, v in env_overrides.items() if v})

    return build_settings(raw)

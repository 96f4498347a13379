"""
Tests for the YAML settings loader.
"""
import pytest

from nirapod_map.config_loader import build_settings, get_config_path, load_map_settings
from nirapod_map.schemas import BoundingBox, RouteMode


class TestConfigLoader:

    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NIRAPOD_API_URL", raising=False)
        monkeypatch.delenv("NIRAPOD_GEOCODER_URL", raising=False)
        monkeypatch.delenv("NIRAPOD_AUTH_TOKEN", raising=False)
        settings = load_map_settings(tmp_path / "absent.yaml")

        assert settings.search_min_length == 2
        assert settings.search_debounce_seconds == pytest.approx(0.3)
        assert settings.route_mode == RouteMode.DRIVE
        assert settings.default_viewport.contains(settings.default_viewport.center)
        assert settings.auth_token is None
        assert settings.local_timezone == "Asia/Dhaka"

    def test_yaml_values_override_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("NIRAPOD_API_URL", raising=False)
        config = tmp_path / "map.yaml"
        config.write_text(
            "api_base_url: 'http://backend:9000/'\n"
            "route_mode: WALK\n"
            "viewport_debounce_seconds: 0.1\n"
            "default_viewport:\n"
            "  south_west: {lat: 23.6, lng: 90.3}\n"
            "  north_east: {lat: 23.9, lng: 90.5}\n"
            "retry: {max_retries: 3, initial_delay: 0.2}\n",
            encoding="utf-8",
        )

        settings = load_map_settings(config)

        assert settings.api_base_url == "http://backend:9000"
        assert settings.route_mode == RouteMode.WALK
        assert settings.viewport_debounce_seconds == pytest.approx(0.1)
        assert settings.default_viewport == BoundingBox.from_corners(23.6, 90.3, 23.9, 90.5)
        assert settings.retry.max_retries == 3

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        config = tmp_path / "map.yaml"
        config.write_text("api_base_url: 'http://from-file'\n", encoding="utf-8")
        monkeypatch.setenv("NIRAPOD_API_URL", "http://from-env")
        monkeypatch.setenv("NIRAPOD_AUTH_TOKEN", "token-1")

        settings = load_map_settings(config)

        assert settings.api_base_url == "http://from-env"
        assert settings.auth_token == "token-1"

    def test_config_path_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NIRAPOD_MAP_CONFIG", str(tmp_path / "custom.yaml"))
        assert get_config_path() == tmp_path / "custom.yaml"

    def test_default_config_path(self, monkeypatch):
        monkeypatch.delenv("NIRAPOD_MAP_CONFIG", raising=False)
        path = get_config_path()
        assert path.name == "map.yaml"
        assert path.parent.name == "config"

    def test_shipped_config_loads(self, monkeypatch):
        monkeypatch.delenv("NIRAPOD_MAP_CONFIG", raising=False)
        monkeypatch.delenv("NIRAPOD_API_URL", raising=False)
        settings = load_map_settings()
        assert settings.search_limit == 5
        assert settings.center_zoom == 14

    @pytest.mark.parametrize("raw", [
        {"route_mode": "fly"},
        {"search_min_length": 0},
        {"search_limit": 0},
        {"search_limit": -3},
        {"local_timezone": "Mars/Olympus_Mons"},
        {"route_timeout_seconds": 0},
        {"viewport_debounce_seconds": -1},
        {"unknown_key": 1},
        {"default_viewport": {"south_west": {"lat": 25, "lng": 90}, "north_east": {"lat": 24, "lng": 91}}},
    ])
    def test_invalid_values_rejected(self, raw):
        with pytest.raises(ValueError):
            build_settings(raw)

    def test_non_mapping_yaml_rejected(self, tmp_path):
        config = tmp_path / "map.yaml"
        config.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_map_settings(config)

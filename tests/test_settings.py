"""Tests for settings loading and logging setup."""
import tempfile
import os
import pytest
import yaml

from config.settings import Settings, get_settings, load_settings


def write_config(data) -> str:
    fd, path = tempfile.mkstemp(suffix=".yaml", prefix="moments_settings_")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f)
    return path


class TestLoadSettings:
    def test_missing_file_gives_defaults(self):
        settings = load_settings("/nonexistent/settings.yaml")
        assert settings == Settings()
        assert settings.schedule.utc_offset_minutes == 120
        assert settings.schedule.accent_color == 0xFFFFFF
        assert settings.database.store_backend == "memory"

    def test_sections(self):
        path = write_config({
            "app_name": "Sheep",
            "debug": "true",
            "dispatch_enabled": False,
            "schedule": {
                "utc_offset_minutes": 180,
                "accent_color": "#00ff00",
                "windows": [{"window": "evening", "start": "22:00", "end": "23:59", "skip_odds": 0.5}],
            },
            "messages": {"friday.evening": "Bää"},
            "database": {"store_backend": "sql", "url": "sqlite:///./x.db"},
            "discord": {"application_id": 42, "command_guild_ids": [1, 2], "breaker_threshold": 3},
        })
        try:
            settings = load_settings(path)
        finally:
            os.unlink(path)

        assert settings.app_name == "Sheep"
        assert settings.debug is True
        assert settings.dispatch_enabled is False
        assert settings.schedule.utc_offset_minutes == 180
        assert settings.schedule.accent_color == 0x00FF00
        assert settings.schedule.windows[0]["window"] == "evening"
        assert settings.messages == {"friday.evening": "Bää"}
        assert settings.database.store_backend == "sql"
        assert settings.database.store_file_dir == "./data"
        assert settings.discord.application_id == "42"
        assert settings.discord.command_guild_ids == ["1", "2"]
        assert settings.discord.api_base == "https://discord.com/api/v10"
        assert settings.discord.breaker_threshold == 3
        assert settings.discord.breaker_recovery_s == 300.0

    def test_env_substitution(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "secret-token")
        path = write_config({"discord": {"token": "${DISCORD_TOKEN}", "public_key": "${UNSET_VAR_XYZ}"}})
        try:
            settings = load_settings(path)
        finally:
            os.unlink(path)
        assert settings.discord.token == "secret-token"
        assert settings.discord.public_key == "${UNSET_VAR_XYZ}"

    def test_hex_color_forms(self):
        for raw in ("0xFFFFFF", "#ffffff", "ffffff", 16777215):
            path = write_config({"schedule": {"accent_color": raw}})
            try:
                assert load_settings(path).schedule.accent_color == 0xFFFFFF
            finally:
                os.unlink(path)

    def test_env_var_selects_file(self, monkeypatch):
        path = write_config({"app_name": "FromEnv"})
        monkeypatch.setenv("MOMENTS_CONFIG", path)
        try:
            assert get_settings().app_name == "FromEnv"
            assert get_settings() is get_settings()
        finally:
            os.unlink(path)

    def test_shipped_config_builds_a_classifier(self):
        from moments.classifier import MomentClassifier
        settings = load_settings(os.path.join(os.path.dirname(__file__), "..", "config", "settings.yaml"))
        classifier = MomentClassifier.from_settings(settings.schedule)
        assert len(classifier.windows) == 4


class TestLogging:
    @pytest.mark.parametrize("json_logs", [True, False])
    def test_configure_logging(self, json_logs):
        import structlog
        from config.logging_setup import configure_logging
        configure_logging("DEBUG", json_logs=json_logs)
        structlog.get_logger().info("test_event", key="value")

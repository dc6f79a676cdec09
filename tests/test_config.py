"""Tests for settings loading.

**Feature: token-alert-engine**
"""

import tempfile
from pathlib import Path

import pytest
import toml

from tokenwatch.config import Settings, load_settings, write_template
from tokenwatch.errors import ConfigValidationError


@pytest.fixture
def config_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestLoadSettings:
    """
    **Feature: token-alert-engine, Property 21: Settings Defaults**

    Missing files and sections fall back to the built-in defaults.
    """

    def test_missing_file_gives_defaults(self, config_dir):
        settings = load_settings(config_dir / "missing.toml")

        assert settings.engine.alert_interval_seconds == 30
        assert settings.engine.sentiment_interval_seconds == 60
        assert settings.engine.kol_interval_seconds == 300
        assert settings.engine.analysis_interval_seconds == 120
        assert settings.sentiment.decay_hours == 12
        assert settings.sentiment.source_weights["twitter"] == 1.5
        assert settings.kol.broadcast_confidence == 70

    def test_partial_file(self, config_dir):
        path = config_dir / "config.toml"
        path.write_text('[engine]\nalert_interval_seconds = 5\n\n[kol]\nbroadcast_confidence = 80\n')

        settings = load_settings(path)

        assert settings.engine.alert_interval_seconds == 5
        assert settings.engine.kol_interval_seconds == 300
        assert settings.engine.analysis_interval_seconds == 120
        assert settings.kol.broadcast_confidence == 80

    def test_template_round_trip(self, config_dir):
        path = write_template(config_dir / "nested" / "config.toml")

        assert path.exists()
        assert load_settings(path) == Settings()
        assert "engine" in toml.load(path)

    def test_invalid_value(self, config_dir):
        path = config_dir / "config.toml"
        path.write_text("[engine]\nalert_interval_seconds = -1\n")

        with pytest.raises(ConfigValidationError):
            load_settings(path)

    def test_unparseable_file(self, config_dir):
        path = config_dir / "config.toml"
        path.write_text("[engine\n")

        with pytest.raises(ConfigValidationError):
            load_settings(path)

"""
Tests for configuration defaults, validation and environment loading.
"""
from pathlib import Path

import pytest
from dotenv import dotenv_values

from game_identifier.config import GameIdentifierConfig
from game_identifier.config_loader import load_config_from_env
from game_identifier.config_validator import _mask_secret, get_optional_env, get_required_env
from game_identifier.exceptions import ConfigurationError

ENV_KEYS = [
    "CATALOG_CSV_PATH",
    "CATALOG_MAX_RANK",
    "RESULT_LIMIT",
    "FUZZY_THRESHOLD",
    "SEARCH_TIMEOUT",
    "CATALOG_QUERY_TIMEOUT",
    "STEM_WIDENING",
    "ENABLE_BGG_DETAILS",
    "BGG_API_TOKEN",
    "BGG_REQUIRE_TOKEN",
    "LOG_LEVEL",
    "STAGGER_STEP_MS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestGameIdentifierConfig:
    """Tests for config defaults and validation."""

    def test_defaults_are_valid(self):
        """Test the documented defaults."""
        config = GameIdentifierConfig().validate()

        assert config.result_limit == 10
        assert config.correction_limit == 20
        assert config.fuzzy_threshold == 0.75
        assert config.search_timeout == 6.0
        assert config.query_timeout == 2.5
        assert config.stem_widening is True
        assert config.stagger_step_ms == 220

    @pytest.mark.parametrize(
        "field, value",
        [
            ("fuzzy_threshold", 1.2),
            ("fuzzy_prefix_threshold", -0.1),
            ("result_limit", 0),
            ("query_timeout", 0),
            ("query_timeout", 3.0),
            ("search_timeout", 5.0),
            ("stagger_initial_ms", -1),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        """Test that out-of-range values raise ConfigurationError."""
        config = GameIdentifierConfig(**{field: value})

        with pytest.raises(ConfigurationError):
            config.validate()


class TestLoadConfigFromEnv:
    """Tests for load_config_from_env."""

    def test_defaults_without_env(self, clean_env):
        """Test loading with no variables set."""
        config = load_config_from_env(load_env_file=False)

        assert config.catalog_csv_path is None
        assert config.enable_bgg_details is False
        assert config.log_level == "INFO"

    def test_reads_typed_values(self, clean_env, tmp_path):
        """Test that numbers, booleans and paths are parsed."""
        csv_path = tmp_path / "ranks.csv"
        csv_path.write_text("id,name\n", encoding="utf-8")
        clean_env.setenv("CATALOG_CSV_PATH", str(csv_path))
        clean_env.setenv("CATALOG_MAX_RANK", "5000")
        clean_env.setenv("RESULT_LIMIT", "5")
        clean_env.setenv("FUZZY_THRESHOLD", "0.8")
        clean_env.setenv("ENABLE_BGG_DETAILS", "true")
        clean_env.setenv("LOG_LEVEL", "debug")

        config = load_config_from_env(load_env_file=False)

        assert config.catalog_csv_path == str(csv_path)
        assert config.catalog_max_rank == 5000
        assert config.result_limit == 5
        assert config.fuzzy_threshold == 0.8
        assert config.enable_bgg_details is True
        assert config.log_level == "DEBUG"

    def test_missing_csv_raises(self, clean_env, tmp_path):
        """Test that a configured CSV path must exist."""
        clean_env.setenv("CATALOG_CSV_PATH", str(tmp_path / "missing.csv"))

        with pytest.raises(ConfigurationError):
            load_config_from_env(load_env_file=False)

    def test_bad_number_raises(self, clean_env):
        """Test that a non-numeric value is reported."""
        clean_env.setenv("SEARCH_TIMEOUT", "soon")

        with pytest.raises(ConfigurationError):
            load_config_from_env(load_env_file=False)

    def test_out_of_range_raises(self, clean_env):
        """Test that loaded values are validated."""
        clean_env.setenv("FUZZY_THRESHOLD", "2")

        with pytest.raises(ConfigurationError):
            load_config_from_env(load_env_file=False)

    def test_lookup_budget_must_cover_scan_fallback(self, clean_env):
        """Test that a search timeout too short for index plus scan is rejected."""
        clean_env.setenv("CATALOG_QUERY_TIMEOUT", "5")

        with pytest.raises(ConfigurationError, match="search_timeout"):
            load_config_from_env(load_env_file=False)

    def test_stem_widening_flag(self, clean_env):
        """Test that STEM_WIDENING turns the stem retry off."""
        clean_env.setenv("STEM_WIDENING", "false")

        assert load_config_from_env(load_env_file=False).stem_widening is False

    def test_env_example_loads(self, clean_env):
        """Test that the shipped .env.example is a working configuration."""
        example = Path(__file__).resolve().parent.parent / ".env.example"
        for key, value in dotenv_values(example).items():
            clean_env.setenv(key, value)

        config = load_config_from_env(load_env_file=False)

        assert config.catalog_csv_path is None
        assert config.enable_bgg_details is False

    def test_required_token(self, clean_env):
        """Test that BGG_REQUIRE_TOKEN makes the token mandatory."""
        clean_env.setenv("BGG_REQUIRE_TOKEN", "1")

        with pytest.raises(ConfigurationError):
            load_config_from_env(load_env_file=False)

        clean_env.setenv("BGG_API_TOKEN", "a1b2c3d4e5f6")
        assert load_config_from_env(load_env_file=False).bgg_api_token == "a1b2c3d4e5f6"


class TestConfigValidator:
    """Tests for environment helpers."""

    def test_placeholder_optional_warns(self, clean_env):
        """Test that an optional placeholder falls back to the default."""
        clean_env.setenv("BGG_API_TOKEN", "your_token_here")

        with pytest.warns(UserWarning):
            assert get_optional_env("BGG_API_TOKEN", "fallback") == "fallback"

    def test_placeholder_required_raises(self, clean_env):
        """Test that a required placeholder is rejected."""
        clean_env.setenv("BGG_API_TOKEN", "changeme")

        with pytest.raises(ConfigurationError):
            get_required_env("BGG_API_TOKEN")

    def test_mask_secret(self):
        """Test that secrets are masked in messages."""
        assert _mask_secret("short") == "***"
        assert _mask_secret("abcd1234efgh5678") == "abcd...5678"

"""Unit tests for configuration loading."""

from pathlib import Path

import pytest
import yaml

from govcon_enrichment.config.loader import (
    _apply_env_overrides,
    _convert_env_value,
    _deep_merge_dicts,
    get_config,
    load_config_from_files,
    reload_config,
)
from govcon_enrichment.config.schemas import EnrichmentSettings
from govcon_enrichment.exceptions import ConfigurationError, ErrorCode


pytestmark = pytest.mark.fast


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    base = {
        "census": {"rate_limit_ms": 200, "batch_size": 100},
        "usaspending": {"page_size": 100, "naics_codes": []},
        "coordinator": {"retry_attempts": 3},
    }
    (tmp_path / "base.yaml").write_text(yaml.safe_dump(base))
    (tmp_path / "test.yaml").write_text(
        yaml.safe_dump({"census": {"rate_limit_ms": 0}, "usaspending": {"page_size": 10}})
    )
    return tmp_path


class TestDeepMergeDicts:
    """Test deep dictionary merging."""

    def test_merge_nested_dicts(self):
        base = {"census": {"enabled": True, "batch_size": 100}}
        override = {"census": {"batch_size": 10}}

        assert _deep_merge_dicts(base, override) == {
            "census": {"enabled": True, "batch_size": 10}
        }

    def test_override_replaces_non_dict(self):
        assert _deep_merge_dicts({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}

    def test_base_not_mutated(self):
        base = {"census": {"enabled": True}}
        _deep_merge_dicts(base, {"census": {"enabled": False}})
        assert base == {"census": {"enabled": True}}


class TestConvertEnvValue:
    """Test environment value coercion."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("true", True),
            ("FALSE", False),
            ("42", 42),
            ("0.5", 0.5),
            ("541511,541512", ["541511", "541512"]),
            ("Public_AR_Current", "Public_AR_Current"),
        ],
    )
    def test_conversion(self, raw, expected):
        assert _convert_env_value(raw) == expected


class TestEnvOverrides:
    """Test GOVCON_ENRICHMENT__ overrides."""

    def test_nested_override(self, monkeypatch):
        monkeypatch.setenv("GOVCON_ENRICHMENT__CENSUS__ENABLED", "false")

        result = _apply_env_overrides({"census": {"enabled": True, "batch_size": 5}})

        assert result["census"] == {"enabled": False, "batch_size": 5}

    def test_unrelated_variables_ignored(self, monkeypatch):
        monkeypatch.setenv("OTHER__CENSUS__ENABLED", "false")

        assert _apply_env_overrides({"census": {"enabled": True}}) == {
            "census": {"enabled": True}
        }


class TestLoadConfigFromFiles:
    """Test YAML file loading."""

    def test_environment_file_merged(self, config_dir):
        config = load_config_from_files(environment="test", config_dir=config_dir)

        assert config["census"] == {"rate_limit_ms": 0, "batch_size": 100}
        assert config["usaspending"]["page_size"] == 10

    def test_missing_environment_file_uses_base(self, config_dir):
        config = load_config_from_files(environment="staging", config_dir=config_dir)

        assert config["census"]["rate_limit_ms"] == 200

    def test_missing_base_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config_from_files(config_dir=tmp_path)

        assert exc_info.value.status_code == ErrorCode.CONFIG_LOAD_FAILED

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "base.yaml").write_text("census: [unclosed")

        with pytest.raises(ConfigurationError):
            load_config_from_files(config_dir=tmp_path)


class TestGetConfig:
    """Test validated, cached configuration."""

    def test_returns_settings(self, config_dir):
        config = get_config(environment="test", config_dir=config_dir)

        assert isinstance(config, EnrichmentSettings)
        assert config.environment == "test"
        assert config.census.rate_limit_ms == 0
        assert config.census.benchmark == "Public_AR_Current"
        assert config.usaspending.page_size == 10
        assert config.coordinator.retry_attempts == 3

    def test_cached_until_reload(self, config_dir):
        first = get_config(environment="test", config_dir=config_dir)
        assert get_config(environment="test", config_dir=config_dir) is first

        reload_config()

        assert get_config(environment="test", config_dir=config_dir) is not first

    def test_env_override_applied(self, config_dir, monkeypatch):
        monkeypatch.setenv("GOVCON_ENRICHMENT__USASPENDING__MAX_RESULTS", "50")

        config = get_config(environment="test", config_dir=config_dir)

        assert config.usaspending.max_results == 50

    def test_env_override_can_be_disabled(self, config_dir, monkeypatch):
        monkeypatch.setenv("GOVCON_ENRICHMENT__USASPENDING__MAX_RESULTS", "50")

        config = get_config(
            environment="test", config_dir=config_dir, apply_env_overrides_flag=False
        )

        assert config.usaspending.max_results == 1000

    def test_validation_failure(self, config_dir, monkeypatch):
        monkeypatch.setenv("GOVCON_ENRICHMENT__USASPENDING__PAGE_SIZE", "500")

        with pytest.raises(ConfigurationError) as exc_info:
            get_config(environment="test", config_dir=config_dir)

        assert "validation failed" in exc_info.value.message

    def test_repository_config_files_load(self, repo_root):
        config = get_config(environment="test", config_dir=repo_root / "config")

        assert config.census.geocoder_url == "https://geocoding.geo.census.gov/geocoder"
        assert config.census.batch_size == 10
        assert config.usaspending.award_types == ["A", "B", "C", "D"]
        assert config.coordinator.retry_backoff_seconds == 0.0
        assert config.logging.file_path is None

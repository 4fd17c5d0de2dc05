"""Unit tests for configuration loading and validation."""

from __future__ import annotations

import pytest
import yaml

from txa.config import load_config, parse_config
from txa.errors import ConfigError

REQUIRED = {
    "big.size.threshod": 1024,
    "big.size.proportion.threshod": 0.05,
    "time.window.in.second": 60,
    "time.window.step.in.second": 30,
    "tx.per.minute.threshod": 1000,
}


def _write_config(tmp_path, data) -> str:
    path = tmp_path / "txa.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestLoadConfig:
    def test_loads_dotted_properties(self, tmp_path):
        config = load_config(_write_config(tmp_path, REQUIRED))
        assert config.big_size_threshold == 1024
        assert config.big_size_proportion_threshold == 0.05
        assert config.window_seconds == 60
        assert config.step_seconds == 30
        assert config.tpm_threshold == 1000

    def test_derived_values(self, tmp_path):
        config = load_config(_write_config(tmp_path, REQUIRED))
        assert config.window_ms == 60_000
        assert config.step_ms == 30_000
        assert config.window_minutes == 1.0
        assert config.retention_ms == 120_000

    def test_optional_key_ranges_default(self, tmp_path):
        config = load_config(_write_config(tmp_path, REQUIRED))
        assert config.uri_key_from == "coap://10.255.8.101/mt"
        assert config.uri_key_to == "coap://10.255.8.102/mt"
        assert config.device_key_from == "01"
        assert config.device_key_to == "50"
        assert config.store_backend == "memory"

    def test_key_ranges_can_be_overridden(self, tmp_path):
        data = dict(REQUIRED, **{"device.key.from": "100", "device.key.to": "199"})
        config = load_config(_write_config(tmp_path, data))
        assert (config.device_key_from, config.device_key_to) == ("100", "199")

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TXA_TPM_THRESHOLD", "250")
        monkeypatch.setenv("TXA_MONGO_DB", "traffic")
        config = load_config(_write_config(tmp_path, REQUIRED))
        assert config.tpm_threshold == 250
        assert config.mongodb["database"] == "traffic"

    def test_env_alone_can_supply_required_properties(self, monkeypatch):
        monkeypatch.setenv("TXA_BIG_SIZE_THRESHOLD", "512")
        monkeypatch.setenv("TXA_BIG_SIZE_PROPORTION_THRESHOLD", "0.1")
        monkeypatch.setenv("TXA_TIME_WINDOW_SECONDS", "60")
        monkeypatch.setenv("TXA_TIME_WINDOW_STEP_SECONDS", "60")
        monkeypatch.setenv("TXA_TPM_THRESHOLD", "100")
        config = load_config()
        assert config.big_size_threshold == 512

    def test_config_is_immutable(self, tmp_path):
        config = load_config(_write_config(tmp_path, REQUIRED))
        with pytest.raises(Exception):
            config.tpm_threshold = 1


class TestConfigErrors:
    @pytest.mark.parametrize("missing", sorted(REQUIRED))
    def test_missing_required_property(self, tmp_path, missing):
        data = {k: v for k, v in REQUIRED.items() if k != missing}
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(_write_config(tmp_path, data))

    def test_non_numeric_threshold(self):
        with pytest.raises(ConfigError):
            parse_config(dict(REQUIRED, **{"tx.per.minute.threshod": "lots"}))

    def test_step_larger_than_window(self):
        with pytest.raises(ConfigError, match="must not exceed"):
            parse_config(dict(REQUIRED, **{"time.window.step.in.second": 120}))

    def test_proportion_above_one(self):
        with pytest.raises(ConfigError):
            parse_config(dict(REQUIRED, **{"big.size.proportion.threshod": 1.5}))

    def test_unknown_backend(self):
        with pytest.raises(ConfigError):
            parse_config(dict(REQUIRED, **{"store.backend": "redis"}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("big.size.threshod: [1, 2\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_no_file_and_no_env(self):
        with pytest.raises(ConfigError):
            load_config()

"""Tests for configuration loading (stock_ledger/config.py)."""

import pytest
import yaml

from stock_ledger.config import LedgerConfig, load_config, load_yaml_file


class TestDefaults:

    def test_defaults(self):
        config = load_config(env={})
        assert config == LedgerConfig()
        assert config.code_ttl_minutes == 15
        assert config.code_digits == 6
        assert config.adjustment_location == "ADJUST"
        assert config.ticket_sync_url is None

    @pytest.mark.parametrize(
        "kwargs",
        [{"code_ttl_minutes": 0}, {"code_digits": 3}, {"adjustment_location": ""}],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            LedgerConfig(**kwargs)


class TestYaml:

    def test_yaml_file_applied(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text(yaml.safe_dump({"database_url": "sqlite://", "code_ttl_minutes": 5}))
        config = load_config(path, env={})
        assert config.database_url == "sqlite://"
        assert config.code_ttl_minutes == 5
        assert config.code_digits == 6

    def test_nested_under_package_key(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("stock_ledger:\n  adjustment_location: CYCLE\n")
        assert load_config(path, env={}).adjustment_location == "CYCLE"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("colour: blue\n")
        with pytest.raises(ValueError, match="colour"):
            load_config(path, env={})

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_config(path, env={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml", env={})


class TestEnvironment:

    def test_env_overrides_yaml(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("code_ttl_minutes: 5\n")
        config = load_config(path, env={"STOCK_LEDGER_CODE_TTL_MINUTES": "30"})
        assert config.code_ttl_minutes == 30

    def test_config_path_from_env(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text("log_level: DEBUG\n")
        config = load_config(env={"STOCK_LEDGER_CONFIG": str(path)})
        assert config.log_level == "DEBUG"

    def test_numeric_coercion(self):
        config = load_config(env={"STOCK_LEDGER_TICKET_SYNC_TIMEOUT": "2.5"})
        assert config.ticket_sync_timeout == 2.5

    def test_bad_number_rejected(self):
        with pytest.raises(ValueError):
            load_config(env={"STOCK_LEDGER_CODE_DIGITS": "six"})

    def test_unrelated_variables_ignored(self):
        assert load_config(env={"PATH": "/usr/bin", "STOCK": "x"}) == LedgerConfig()

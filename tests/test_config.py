"""
Tests for configuration and structured logging
"""

import json
import logging
import pytest
from pydantic import ValidationError

from asset_ledger import config as config_module
from asset_ledger.config import AssetLedgerConfig, get_config, reload_config
from asset_ledger.logging_config import JSONFormatter, setup_logging, log_action


class TestAssetLedgerConfig:
    """Environment-driven configuration"""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ASSET_LEDGER_STORAGE_BACKEND", raising=False)
        config = AssetLedgerConfig(_env_file=None)

        assert config.storage_backend == "memory"
        assert config.active_status == "ACTIVE"
        assert config.transaction_key_prefix == "TXN_"
        assert config.log_format == "json"
        assert not config.seed_on_startup

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("ASSET_LEDGER_STORAGE_BACKEND", "SQLite")
        monkeypatch.setenv("ASSET_LEDGER_SQLITE_PATH", "/tmp/ledger.db")
        monkeypatch.setenv("ASSET_LEDGER_API_PORT", "9000")
        monkeypatch.setenv("ASSET_LEDGER_SEED_ON_STARTUP", "true")

        config = AssetLedgerConfig(_env_file=None)
        assert config.storage_backend == "sqlite"
        assert config.sqlite_path == "/tmp/ledger.db"
        assert config.api_port == 9000
        assert config.seed_on_startup

    def test_invalid_backend(self):
        with pytest.raises(ValidationError):
            AssetLedgerConfig(storage_backend="redis", _env_file=None)

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            AssetLedgerConfig(log_format="xml", _env_file=None)

    def test_empty_transaction_key_prefix(self, monkeypatch):
        with pytest.raises(ValidationError, match="transaction_key_prefix"):
            AssetLedgerConfig(transaction_key_prefix="", _env_file=None)

        monkeypatch.setenv("ASSET_LEDGER_TRANSACTION_KEY_PREFIX", "")
        with pytest.raises(ValidationError):
            AssetLedgerConfig(_env_file=None)

    def test_reload_config(self, monkeypatch):
        original = get_config()
        try:
            monkeypatch.setenv("ASSET_LEDGER_LOG_LEVEL", "DEBUG")
            reloaded = reload_config()
            assert reloaded.log_level == "DEBUG"
            assert get_config() is reloaded
        finally:
            config_module.config = original


class TestStructuredLogging:
    """JSON log records"""

    def test_json_formatter_includes_structured_fields(self):
        record = logging.LogRecord("asset_ledger.contract", logging.INFO, __file__, 1,
                                   "Created asset %s", ("1111111111",), None)
        record.action = "create"
        record.resource = "1111111111"
        record.correlation_id = "tx-1"

        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "Created asset 1111111111"
        assert entry["level"] == "INFO"
        assert entry["action"] == "create"
        assert entry["resource"] == "1111111111"
        assert entry["correlation_id"] == "tx-1"
        assert "extra" not in entry

    def test_setup_logging_replaces_handlers(self):
        logger = setup_logging("DEBUG", logger_name="ledger_test_setup")
        logger = setup_logging("WARNING", logger_name="ledger_test_setup", log_format="text")

        assert len(logger.handlers) == 1
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.level == logging.WARNING
        assert not logger.propagate

    def test_log_action_respects_level(self, caplog):
        logger = logging.getLogger("ledger_test_action")
        logger.propagate = True
        with caplog.at_level(logging.WARNING, logger="ledger_test_action"):
            log_action(logger, "info", "dropped", action="noop")
            log_action(logger, "warning", "kept", action="delete", extra={"error": "NotFound"})

        assert [r.getMessage() for r in caplog.records] == ["kept"]
        assert caplog.records[0].extra == {"error": "NotFound"}

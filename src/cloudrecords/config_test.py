"""
Tests for Config and configure_logging.

Run with: pytest src/cloudrecords/config_test.py -v
"""
import logging

import pytest

from cloudrecords.config import Config, configure_logging


class TestFromEnv:
    """Tests for Config.from_env()"""

    def test_defaults(self, monkeypatch):
        for name in ["CLOUDRECORDS_STORE", "CLOUDRECORDS_CONTAINER", "CLOUDRECORDS_PAGE_SIZE", "LOG_LEVEL"]:
            monkeypatch.delenv(name, raising=False)

        cfg = Config.from_env()

        assert cfg.store_backend == "memory"
        assert cfg.container_identifier == "default"
        assert cfg.default_page_size == 100
        assert cfg.log_level == "WARNING"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("CLOUDRECORDS_STORE", "Postgres")
        monkeypatch.setenv("CLOUDRECORDS_CONTAINER", "iCloud.com.example")
        monkeypatch.setenv("CLOUDRECORDS_PAGE_SIZE", "25")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        cfg = Config.from_env()

        assert cfg.store_backend == "postgres"
        assert cfg.container_identifier == "iCloud.com.example"
        assert cfg.default_page_size == 25
        assert cfg.log_level == "DEBUG"

    def test_empty_container_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("CLOUDRECORDS_CONTAINER", "")

        assert Config.from_env().container_identifier == "default"

    def test_unknown_backend_raises(self, monkeypatch):
        monkeypatch.setenv("CLOUDRECORDS_STORE", "sqlite")

        with pytest.raises(ValueError, match="CLOUDRECORDS_STORE"):
            Config.from_env()


class TestConfigureLogging:
    """Tests for configure_logging()"""

    def test_sets_level_and_single_handler(self):
        logger = logging.getLogger("cloudrecords")
        original_level, original_handlers = logger.level, list(logger.handlers)
        try:
            configure_logging("DEBUG")
            configure_logging("INFO")

            assert logger.level == logging.INFO
            assert len(logger.handlers) == max(1, len(original_handlers))
        finally:
            logger.setLevel(original_level)
            logger.handlers[:] = original_handlers

"""Tests for shared/helper/HelperConfig.py and shared/logging/logging_setup.py"""

import logging

import pytest

from shared.logging.logging_setup import ColorLogger, SecretRedactionFilter, setup_logging


class TestHelperConfig:
    def test_string_values(self, helper_config, monkeypatch):
        monkeypatch.setenv("SOME_NAME", "  padded ")
        assert helper_config.get_string_val("some_name") == "padded"
        monkeypatch.setenv("SOME_NAME", "")
        assert helper_config.get_string_val("SOME_NAME", default="fallback") == "fallback"
        with pytest.raises(ValueError):
            helper_config.get_string_val("SOME_NAME")

    def test_number_values(self, helper_config, monkeypatch):
        monkeypatch.setenv("SOME_NUMBER", "2.5")
        assert helper_config.get_number_val("SOME_NUMBER") == 2.5
        monkeypatch.setenv("SOME_NUMBER", " 7 ")
        assert helper_config.get_number_val("SOME_NUMBER") == 7
        monkeypatch.setenv("SOME_NUMBER", "seven")
        with pytest.raises(ValueError):
            helper_config.get_number_val("SOME_NUMBER")

    def test_int_values(self, helper_config, monkeypatch):
        monkeypatch.setenv("SOME_INT", "3.0")
        assert helper_config.get_int_val("SOME_INT") == 3
        monkeypatch.setenv("SOME_INT", "3.5")
        with pytest.raises(ValueError):
            helper_config.get_int_val("SOME_INT")
        monkeypatch.setenv("SOME_INT", "0")
        with pytest.raises(ValueError):
            helper_config.get_int_val("SOME_INT", minimum=1)
        monkeypatch.delenv("SOME_INT")
        assert helper_config.get_int_val("SOME_INT", default=9, minimum=1) == 9

    def test_bool_values(self, helper_config, monkeypatch):
        for raw, expected in [("true", True), ("1", True), ("YES", True), ("false", False), ("no", False)]:
            monkeypatch.setenv("SOME_FLAG", raw)
            assert helper_config.get_bool_val("SOME_FLAG") is expected
        monkeypatch.delenv("SOME_FLAG")
        assert helper_config.get_bool_val("SOME_FLAG", default=True) is True

    def test_list_values(self, helper_config, monkeypatch):
        monkeypatch.setenv("SOME_LIST", "[pdf, txt,,md]")
        assert helper_config.get_list_val("SOME_LIST") == ["pdf", "txt", "md"]
        monkeypatch.setenv("SOME_LIST", "pdf,txt")
        with pytest.raises(ValueError):
            helper_config.get_list_val("SOME_LIST")
        monkeypatch.setenv("SOME_LIST", "[1,x]")
        with pytest.raises(ValueError):
            helper_config.get_list_val("SOME_LIST", element_type=int)


class TestLogging:
    def test_secrets_are_redacted(self):
        record = logging.LogRecord(
            "tests", logging.INFO, __file__, 1, "calling with key %s", ("sk-embed-secret",), None
        )
        assert SecretRedactionFilter(secrets=["sk-embed-secret"]).filter(record) is True
        assert record.getMessage() == "calling with key ***"

    def test_secrets_are_read_from_environment(self):
        record = logging.LogRecord("tests", logging.INFO, __file__, 1, "token sk-llm-secret", None, None)
        SecretRedactionFilter().filter(record)
        assert "sk-llm-secret" not in record.getMessage()

    def test_color_logger_passes_color_as_extra(self, caplog):
        logger = ColorLogger(logging.getLogger("tests.color"))
        with caplog.at_level(logging.INFO, logger="tests.color"):
            logger.info("Document id=%s indexed", 4, color="green")
        assert caplog.records[-1].getMessage() == "Document id=4 indexed"
        assert caplog.records[-1].color == "green"

    def test_setup_logging_writes_log_file(self, env):
        root = logging.getLogger()
        handlers_before, level_before = list(root.handlers), root.level
        try:
            logger = setup_logging(logger_name="doc_rag_bridge.tests")
            logger.info("hello from tests")
            for handler in root.handlers:
                handler.flush()
            assert (env / "logs" / "app.log").exists()
        finally:
            for handler in list(root.handlers):
                if handler not in handlers_before:
                    root.removeHandler(handler)
                    handler.close()
            for handler in handlers_before:
                if handler not in root.handlers:
                    root.addHandler(handler)
            root.setLevel(level_before)

"""Unit tests for cpboot.shared.logging module."""

import json
import logging

import pytest
import structlog

from cpboot.errors import StorageIOError
from cpboot.shared.logging import bind_context, configure_logging, get_logger


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def read_lines(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


@pytest.mark.cli_unit
class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_log_file_gets_json_lines(self, tmp_path):
        """Test events are appended to the log file as JSON objects."""
        log_file = tmp_path / "logs" / "destroy.log"
        configure_logging("warning", log_file=log_file)

        get_logger("cpboot.test").warning("service removed", service="cpboot-db-ns")

        [line] = read_lines(log_file)
        assert line["event"] == "service removed"
        assert line["service"] == "cpboot-db-ns"
        assert line["level"] == "warning"
        assert line["logger"] == "cpboot.test"
        assert "timestamp" in line

    def test_log_file_records_info_when_console_is_quiet(self, tmp_path, capsys):
        """Test the log file keeps info events the warning-level console drops."""
        log_file = tmp_path / "destroy.log"
        configure_logging("warning", log_file=log_file)

        get_logger("cpboot.test").info("local environment destroyed", environment="dev")

        assert [line["event"] for line in read_lines(log_file)] == ["local environment destroyed"]
        assert "local environment destroyed" not in capsys.readouterr().err

    def test_log_file_appended(self, tmp_path):
        """Test reconfiguring keeps earlier runs' lines."""
        log_file = tmp_path / "destroy.log"
        configure_logging("info", log_file=log_file)
        get_logger("cpboot.test").info("first run")
        configure_logging("info", log_file=log_file)
        get_logger("cpboot.test").info("second run")

        assert [line["event"] for line in read_lines(log_file)] == ["first run", "second run"]

    def test_bound_context_attached(self, tmp_path):
        """Test values bound by a command appear on every event."""
        log_file = tmp_path / "destroy.log"
        configure_logging("info", log_file=log_file)
        bind_context(command="destroy-environment", environment="dev")

        get_logger("cpboot.test").info("escalating destroy")

        [line] = read_lines(log_file)
        assert line["command"] == "destroy-environment"
        assert line["environment"] == "dev"

    def test_standard_library_records_rendered(self, tmp_path):
        """Test records from plain logging loggers reach the file too."""
        log_file = tmp_path / "destroy.log"
        configure_logging("info", log_file=log_file)

        logging.getLogger("pymongo.test").warning("connection reset")

        [line] = read_lines(log_file)
        assert line["event"] == "connection reset"
        assert line["level"] == "warning"

    def test_unopenable_log_file(self, tmp_path):
        """Test a log file that cannot be opened is a storage error."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        with pytest.raises(StorageIOError, match="cannot open log file"):
            configure_logging("info", log_file=blocker / "destroy.log")

    def test_console_level(self, capsys):
        """Test the console shows events at the configured level only."""
        configure_logging("info")

        logger = get_logger("cpboot.test")
        logger.debug("hidden")
        logger.info("shown", port=37017)

        err = capsys.readouterr().err
        assert "shown" in err
        assert "port=37017" in err
        assert "hidden" not in err

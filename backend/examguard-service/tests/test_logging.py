"""
Tests for logging setup and proctoring log lines
"""
import logging

import pytest

from examguard.proctor.utils.logging import log_proctor_event, log_violation_recorded
from examguard.utils.logging import ColoredFormatter
from examguard.utils.logging_config import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSetupLogging:
    """Root logger configuration"""

    def test_file_handler_written(self, tmp_path, restore_root_logger):
        setup_logging("examguard-test", level="DEBUG", log_to_file=True, log_dir=tmp_path)
        logging.getLogger("examguard.test").warning("camera lost")

        for handler in logging.getLogger().handlers:
            handler.flush()

        files = list(tmp_path.glob("examguard-test_*.log"))
        assert len(files) == 1
        assert "camera lost" in files[0].read_text(encoding="utf-8")

    def test_console_only_by_default(self, tmp_path, restore_root_logger):
        setup_logging("examguard-test", level="info")

        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ColoredFormatter)


class TestProctorLogLines:
    """[PROCTOR] line format"""

    def test_event_line_format(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="examguard.proctor.utils.logging"):
            log_proctor_event("EXM_ABC123", "check", {"count": 0, "present": False}, level="debug")

        assert caplog.records[-1].getMessage() == "[PROCTOR] session=EXM_ABC123 event=check count=0 present=False"
        assert caplog.records[-1].levelno == logging.DEBUG

    def test_violation_is_warning(self, caplog):
        with caplog.at_level(logging.INFO, logger="examguard.proctor.utils.logging"):
            log_violation_recorded("EXM_ABC123", "FOCUS_LOST", "User switched tabs or minimized window.", True)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert "event=violation kind=FOCUS_LOST evidence=yes" in record.getMessage()

    def test_violation_lines_highlighted(self):
        record = logging.LogRecord("x", logging.WARNING, __file__, 1, "[PROCTOR] session=s event=violation", None, None)
        formatted = ColoredFormatter().format(record)

        assert "\033[35m" in formatted

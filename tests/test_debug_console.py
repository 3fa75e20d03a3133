import logging

import pytest

from utils.debug_console import DebugCapturingConsole, configure_logging


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


@pytest.fixture
def root_handlers():
    root_logger = logging.getLogger()
    saved_handlers, saved_level = root_logger.handlers[:], root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    for handler in saved_handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(saved_level)


def test_console_output_is_mirrored_without_markup(tmp_path):
    capture = logging.getLogger("test_console_capture")
    capture.setLevel(logging.DEBUG)
    handler = ListHandler()
    capture.addHandler(handler)

    with open(tmp_path / "out.txt", "w") as out:
        console = DebugCapturingConsole(debug_logger=capture, file=out, width=80)
        console.print("[green]Login successful![/green]")

    assert handler.messages == ["[CONSOLE] Login successful!"]
    capture.removeHandler(handler)


def test_normal_logging_quiets_httpx(root_handlers):
    assert configure_logging(debug=False) is None

    assert logging.getLogger("httpx").level >= logging.WARNING
    assert len(logging.getLogger().handlers) == 1


def test_debug_logging_appends_to_file(root_handlers, tmp_path):
    log_file = tmp_path / "debug.log"

    capture = configure_logging(debug=True, log_file=str(log_file))
    logging.getLogger("session.test").debug("refresh scheduled")

    assert capture is not None
    assert logging.getLogger().level == logging.DEBUG
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "refresh scheduled" in log_file.read_text()
    for handler in capture.handlers[:]:
        capture.removeHandler(handler)
        handler.close()

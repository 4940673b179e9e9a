import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from dsky_bridge.logging import NETWORK_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    network_levels = {name: logging.getLogger(name).level for name in NETWORK_LOGGERS}
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    for name, value in network_levels.items():
        logging.getLogger(name).setLevel(value)


def test_configure_logging_writes_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "bridge.log"

    configure_logging("debug", log_path=log_path)
    logging.getLogger("dsky_bridge.test").info("slot 1 online")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logging.getLogger().level == logging.DEBUG
    assert any(
        isinstance(handler, RotatingFileHandler)
        for handler in logging.getLogger().handlers
    )
    content = log_path.read_text(encoding="utf-8")
    assert "| INFO | dsky_bridge.test | slot 1 online" in content


def test_configure_logging_network_toggle() -> None:
    configure_logging("INFO")
    assert logging.getLogger("aiohttp.access").level == logging.WARNING

    configure_logging("INFO", log_network=True)
    assert logging.getLogger("aiohttp.websocket").level == logging.DEBUG

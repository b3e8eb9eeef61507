from __future__ import annotations

from typing import List

from loguru import logger

from config.settings import LoggingSettings
from utils.logger import FILE_FORMAT, get_logger, setup_logging


def test_setup_logging_gives_unbound_records_a_component() -> None:
    setup_logging(
        LoggingSettings(console_enabled=False, file_enabled=False, errors_file_path=None)
    )
    lines: List[str] = []
    sink_id = logger.add(lines.append, format=FILE_FORMAT, level="INFO")
    try:
        logger.info("plain record")
        get_logger("Engine").info("bound record")
    finally:
        logger.remove(sink_id)

    assert " | app:" in lines[0] and "plain record" in lines[0]
    assert " | Engine:" in lines[1] and "bound record" in lines[1]

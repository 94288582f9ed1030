"""Unit tests for loguru configuration."""

import json
import logging
import sys

from loguru import logger

from src.user_service.api.utils.app_startup import configure_logging
from src.user_service.runtime.config.config_data import (
    AppConfig,
    ConfigData,
    LoggingConfig,
)


def test_json_file_sink_receives_stdlib_records(tmp_path):
    log_file = tmp_path / "logs" / "service.log"
    config = ConfigData(
        logging=LoggingConfig(level="INFO", format="json", file=str(log_file)),
        app=AppConfig(environment="test"),
    )

    try:
        configure_logging(config)
        logging.getLogger("some.library").warning("forwarded from stdlib")
        logger.complete()
    finally:
        logger.remove()
        logger.add(sys.stderr)

    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    messages = [record["record"]["message"] for record in records]
    assert "forwarded from stdlib" in messages
    assert all(record["record"]["extra"].get("request_id") == "-" for record in records)

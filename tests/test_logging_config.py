"""Tests for the package logger setup."""

from __future__ import annotations

import logging

import pytest

from webscraper.logging_config import setup_logging


@pytest.fixture(autouse=True)
def fresh_logger():
    logger = logging.getLogger("webscraper")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers.clear()
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


class TestSetupLogging:
    def test_configures_package_logger(self) -> None:
        logger = setup_logging("warning")

        assert logger.name == "webscraper"
        assert logger.level == logging.WARNING
        assert logger.propagate is False
        assert len(logger.handlers) == 1

    def test_repeated_calls_only_change_the_level(self) -> None:
        setup_logging("INFO")
        logger = setup_logging("DEBUG")

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logging.getLogger("webscraper.scraper.service").isEnabledFor(logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self) -> None:
        assert setup_logging("chatty").level == logging.INFO

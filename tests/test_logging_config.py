"""Tests for the shared logging configuration."""

from __future__ import annotations

import logging

from app.logging_config import _DICT_CONFIG, get_logger


def test_project_loggers_inherit_root_configuration() -> None:
    assert "loggers" not in _DICT_CONFIG
    logger = get_logger("teselado.pipeline")
    assert logger.name == "teselado.pipeline"
    assert logging.getLogger("teselado").level == logging.NOTSET
    assert logger.getEffectiveLevel() == logging.getLogger().getEffectiveLevel()
    assert {handler.__class__.__name__ for handler in logging.getLogger().handlers} >= {
        "StreamHandler", "RotatingFileHandler",
    }

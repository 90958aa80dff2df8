"""Tests for CLI logging setup."""
from __future__ import annotations

import logging


class TestConfigureLogging:
    def test_handler_is_not_stacked(self) -> None:
        from vendorsync.core.utils.logging import configure_logging

        logger = configure_logging(verbose=False)
        configure_logging(verbose=True)

        named = [h for h in logger.handlers if h.get_name() == "vendorsync-stderr"]
        assert len(named) == 1
        assert logger.level == logging.DEBUG
        assert named[0].level == logging.DEBUG

        configure_logging(verbose=False)
        assert logger.level == logging.WARNING

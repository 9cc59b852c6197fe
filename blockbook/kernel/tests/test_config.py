"""
Blockbook -- Configuration Tests
"""

import logging

from blockbook.config import Settings, configure_logging, settings


class TestSettings:
    def test_defaults_are_usable(self):
        assert settings.HISTORY_DECAY > 0
        assert settings.STORAGE_KEY
        assert isinstance(settings, Settings)

    def test_configure_logging_sets_level(self):
        logger = logging.getLogger("blockbook")
        previous = logger.level
        try:
            configure_logging("debug")
            assert logger.level == logging.DEBUG
            configure_logging("warning")
            assert logger.level == logging.WARNING
            assert len(logger.handlers) == 1
        finally:
            logger.setLevel(previous)
            for handler in list(logger.handlers):
                logger.removeHandler(handler)

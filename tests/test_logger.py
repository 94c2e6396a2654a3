# tests/test_logger.py
import logging

from usage_monitor.utils.logger import LOGGER_NAME, configure_logging


def test_configure_logging_writes_rotating_file(tmp_path):
    logger = configure_logging("debug", log_dir=tmp_path)
    try:
        logging.getLogger(LOGGER_NAME).debug("scheduler started")
        for handler in logger.handlers:
            handler.flush()

        text = (tmp_path / "monitor.log").read_text()
        assert "[DEBUG] [usage_monitor] scheduler started" in text
        assert not logger.propagate

        # Reconfiguring replaces handlers instead of adding more
        configure_logging("info", log_dir=tmp_path)
        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

import logging

from readmaster.utils.logger import LOGGER_NAME, setup_logger


def test_repeated_setup_keeps_a_single_console_handler():
    first = setup_logger("INFO")
    second = setup_logger("INFO")

    assert first is second
    assert [h.name for h in second.handlers].count(LOGGER_NAME) == 1


def test_level_is_reapplied_on_each_call():
    try:
        app_logger = setup_logger("debug")
        assert app_logger.level == logging.DEBUG

        app_logger = setup_logger("WARNING")
        handler = next(h for h in app_logger.handlers if h.name == LOGGER_NAME)
        assert app_logger.level == handler.level == logging.WARNING
    finally:
        setup_logger()


def test_unknown_level_falls_back_to_info():
    try:
        assert setup_logger("chatty").level == logging.INFO
    finally:
        setup_logger()


def test_library_loggers_are_quieted():
    setup_logger()
    assert logging.getLogger("apscheduler").level >= logging.WARNING
    assert logging.getLogger("httpx").level >= logging.WARNING

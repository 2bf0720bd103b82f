import logging

from finplan.settings import Settings, configure_logging, load_settings


def test_defaults_when_environment_is_empty():
    assert load_settings({}) == Settings()


def test_environment_overrides():
    settings = load_settings(
        {
            "FINPLAN_INFLATION_PCT": "4.5",
            "FINPLAN_BRACKET_INFLATION_PCT": "0",
            "FINPLAN_LOG_LEVEL": "debug",
            "FINPLAN_PORT": "9000",
        }
    )

    assert settings.inflation_rate_pct == 4.5
    assert settings.bracket_inflation_rate_pct == 0
    assert settings.log_level == "DEBUG"
    assert settings.port == 9000


def test_malformed_numbers_fall_back_to_defaults():
    settings = load_settings({"FINPLAN_INFLATION_PCT": "six"})

    assert settings.inflation_rate_pct == 6.0


def test_configure_logging_adds_one_handler():
    logger = logging.getLogger("finplan")
    before = len(logger.handlers)

    configure_logging(Settings(log_level="WARNING"))
    configure_logging(Settings(log_level="WARNING"))

    assert len(logger.handlers) == max(before, 1)
    assert logger.level == logging.WARNING

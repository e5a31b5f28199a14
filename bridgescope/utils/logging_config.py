import logging.config

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "shortname": {"()": "bridgescope.utils.shortname.ShortNameFilter"},
    },
    "formatters": {
        "custom": {
            "format": "[%(asctime)s] [%(levelname)s] %(shortname)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "custom", "filters": ["shortname"]},
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "httpx": {"level": "WARNING"},
        "web3": {"level": "WARNING"},
    },
}


def configure_logging(level: str = None) -> None:
    config = dict(LOGGING_CONFIG)
    if level:
        config["root"] = {**LOGGING_CONFIG["root"], "level": level.upper()}
    logging.config.dictConfig(config)

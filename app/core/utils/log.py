import logging
import logging.config
import queue
from enum import Enum
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from typing import Any

import uvicorn

from app.core.utils.config import Settings


class ColoredConsoleFormatter(uvicorn.logging.DefaultFormatter):
    class ConsoleColors(str, Enum):
        """Colors can be found here: https://talyian.github.io/ansicolors/"""

        DEBUG = "\033[38;5;12m"
        INFO = "\033[38;5;10m"
        WARNING = "\033[38;5;11m"
        ERROR = "\033[38;5;9m"
        CRITICAL = "\033[38;5;1m"
        BOLD = "\033[1m"
        END = "\033[0m"

    def __init__(self, *args, **kwargs):
        super().__init__(datefmt="%d-%b-%y %H:%M:%S")

        self.formatters = {}

        for level in [
            logging.DEBUG,
            logging.INFO,
            logging.WARNING,
            logging.ERROR,
            logging.CRITICAL,
        ]:
            fmt = (
                "%(asctime)s - %(name)s - "
                + self.ConsoleColors.BOLD
                + "%(levelname)s"
                + self.ConsoleColors.END
                + " - "
                + self.ConsoleColors[logging.getLevelName(level)]
                + "%(message)s"
                + self.ConsoleColors.END
            )
            self.formatters[level] = logging.Formatter(fmt, self.datefmt)

    def format(self, record: logging.LogRecord) -> str:
        formatter: logging.Formatter = self.formatters.get(
            record.levelno,
            self.formatters[logging.ERROR],
        )
        return formatter.format(record)


class LogConfig:
    """
    Logging configuration of the server, converted to a dict for `logging.config.dictConfig`.

    Every `hub.<name>` logger writes to its own rotating file in `logs/` and to the console.
    `hub.error` receives everything which does not belong to a more specific logger.

    Call `LogConfig().initialize_loggers()` to configure the logging ecosystem.
    """

    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FOLDER: Path = Path("logs")

    # logger suffix -> (file name, max size in MB, number of kept backups)
    LOG_FILES: dict[str, tuple[str, int, int]] = {
        # incoming requests and JWT verifications
        "access": ("access.log", 40, 50),
        # logins, registrations, role changes and refused permissions
        "security": ("security.log", 40, 50),
        # startup, configuration and unexpected failures
        "error": ("errors.log", 10, 20),
        # creations, decisions, cancellations, check-ins and releases
        "booking": ("booking.log", 20, 50),
    }

    def _file_handler(self, filename: str, max_megabytes: int, backups: int):
        # https://docs.python.org/3/library/logging.handlers.html#logging.handlers.RotatingFileHandler
        return {
            "formatter": "default",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(self.LOG_FOLDER / filename),
            "maxBytes": 1024 * 1024 * max_megabytes,
            "backupCount": backups,
            "level": "INFO",
        }

    # See https://docs.python.org/3/library/logging.config.html#logging-config-dictschema
    def get_config_dict(self, settings: Settings):
        # Settings are passed as a parameter as the dependency is not available before the app is built
        minimum_level = "DEBUG" if settings.LOG_DEBUG_MESSAGES else "INFO"

        handlers: dict[str, dict[str, Any]] = {
            "console": {
                "formatter": "console_formatter",
                "class": "logging.StreamHandler",
                "level": minimum_level,
            },
        }
        loggers: dict[str, dict[str, Any]] = {
            "root": {"level": "DEBUG", "handlers": ["console"]},
            "hub": {"propagate": False},
        }

        for name, (filename, max_megabytes, backups) in self.LOG_FILES.items():
            handlers[f"file_{name}"] = self._file_handler(
                filename=filename,
                max_megabytes=max_megabytes,
                backups=backups,
            )
            loggers[f"hub.{name}"] = {
                "handlers": [f"file_{name}", "console"],
                "level": minimum_level,
            }

        # "hub.access" replaces "uvicorn.access" as it includes the request_id
        loggers["uvicorn.access"] = {"handlers": []}
        loggers["uvicorn.error"] = {
            "handlers": ["file_error", "console"],
            "level": minimum_level,
            "propagate": False,
        }

        return {
            "version": 1,
            # Database and uvicorn loggers are only kept when debugging
            "disable_existing_loggers": not settings.LOG_DEBUG_MESSAGES,
            "formatters": {
                "default": {
                    "format": self.LOG_FORMAT,
                    "datefmt": "%d-%b-%y %H:%M:%S",
                },
                "console_formatter": {
                    "()": "app.core.utils.log.ColoredConsoleFormatter",
                },
            },
            "handlers": handlers,
            "loggers": loggers,
        }

    def initialize_loggers(self, settings: Settings):
        """
        Configure the loggers, then move their handlers behind a `QueueListener`.

        Endpoints log while handling requests: records are pushed to a queue and written
        by a listener thread, so file writes never block the event loop.
        """
        # https://rob-blackbourn.medium.com/how-to-use-python-logging-queuehandler-with-dictconfig-1e8b1284e27a

        # RotatingFileHandler does not create missing folders
        self.LOG_FOLDER.mkdir(parents=True, exist_ok=True)

        config_dict = self.get_config_dict(settings=settings)
        logging.config.dictConfig(config_dict)

        for name in config_dict["loggers"]:
            logger = logging.getLogger(name)
            if not logger.handlers:
                continue

            log_queue: queue.Queue[Any] = queue.Queue(-1)
            listener = QueueListener(
                log_queue,
                *logger.handlers,
                respect_handler_level=True,
            )
            listener.start()

            logger.handlers = [QueueHandler(log_queue)]

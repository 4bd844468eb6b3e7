import logging
import multiprocessing
import os

from app.app import INIT_DB_ENV_VARIABLE, init_db
from app.core.utils.config import construct_prod_settings
from app.core.utils.log import LogConfig

# Usage: `gunicorn app.main:app --worker-class uvicorn.workers.UvicornWorker`
# Workers are configured with environment variables, the `on_starting` hook initializes the database once.

bind = os.getenv("BIND", f"{os.getenv('HOST', '0.0.0.0')}:{os.getenv('PORT', '8000')}")  # noqa: S104
loglevel = os.getenv("LOG_LEVEL", "info")

if os.getenv("WEB_CONCURRENCY"):
    workers = int(os.environ["WEB_CONCURRENCY"])
else:
    workers = max(multiprocessing.cpu_count(), 2)
    if os.getenv("MAX_WORKERS"):
        workers = min(workers, int(os.environ["MAX_WORKERS"]))

accesslog = os.getenv("ACCESS_LOG", "-") or None
errorlog = os.getenv("ERROR_LOG", "-") or None
graceful_timeout = int(os.getenv("GRACEFUL_TIMEOUT", "120"))
timeout = int(os.getenv("TIMEOUT", "120"))
keepalive = int(os.getenv("KEEP_ALIVE", "5"))


def on_starting(server) -> None:
    """
    Called just before the master process is initialized, before workers are forked.
    We use it to create the database tables or run the migrations.

    See https://docs.gunicorn.org/en/stable/settings.html#on-starting
    """
    settings = construct_prod_settings()

    # Workers inherit the environment of the arbiter, this prevents them from initializing the database again
    os.environ[INIT_DB_ENV_VARIABLE] = "False"

    LogConfig().initialize_loggers(settings=settings)

    hub_error_logger = logging.getLogger("hub.error")
    hub_error_logger.warning(
        "Starting Gunicorn server and initializing the database.",
    )

    init_db(
        settings=settings,
        hub_error_logger=hub_error_logger,
        drop_db=False,
    )

    if not settings.SMTP_ACTIVE:
        hub_error_logger.warning(
            "SMTP is disabled. Booking notifications will not be sent by email.",
        )

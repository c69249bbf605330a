"""Process-wide logging setup.

Call `setup_logging()` once at startup; modules then use
`logging.getLogger(__name__)` as usual.
"""

import logging
import sys

from settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("psycopg.pool", "httpx")


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger with a single stdout handler.

    Safe to call more than once; existing handlers are replaced so that
    reloads (uvicorn --reload, tests) don't duplicate output.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

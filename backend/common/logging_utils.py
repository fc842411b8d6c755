import logging
import sys

from backend.common.config import get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] (%(service)s) %(message)s"

# Third-party loggers that drown out merge and scan records at INFO
_QUIET_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration", "uvicorn.access")


class _ServiceContextFilter(logging.Filter):
    """Stamps every record with the name of the process that emitted it."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service_name
        return True


def configure_logging(service_name: str | None = None) -> None:
    """Route all logging to stdout, tagged with the service name.

    The API process and the scan worker both call this once at startup.
    """
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(_ServiceContextFilter(service_name or settings.service_name))

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level.upper())
    # Replace, never stack, handlers when called twice
    root_logger.handlers = [handler]

    if root_logger.level <= logging.INFO:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

import logging
import sys

from .config import REPORT_LOG_LEVEL

PACKAGE_LOGGER = "dealership_reports"
REPORTS_LOGGER = "dealership_reports.features.reports"


class NamespaceFilter(logging.Filter):
    def __init__(self, allowed_namespaces=None):
        super().__init__()
        self.allowed_namespaces = allowed_namespaces if allowed_namespaces is not None else []

    def filter(self, record):
        if not self.allowed_namespaces:
            return True  # No namespaces configured, let everything through
        return any(record.name.startswith(ns) for ns in self.allowed_namespaces)


log_formatter = logging.Formatter(
    fmt="%(asctime)s - %(name)s:%(lineno)d - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def configure_logging(allowed_namespaces=None, reports_level=REPORT_LOG_LEVEL) -> logging.Logger:
    """Attach the console handler to the package logger.

    Safe to call more than once; the handler is only added the first time.
    Modules log through ``logging.getLogger(__name__)`` so every logger under
    ``dealership_reports`` inherits this handler and level.
    """
    app_logger = logging.getLogger(PACKAGE_LOGGER)
    app_logger.setLevel(logging.INFO)

    if not any(getattr(h, "_dealership_reports", False) for h in app_logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(log_formatter)
        console_handler._dealership_reports = True
        if allowed_namespaces:
            console_handler.addFilter(NamespaceFilter(allowed_namespaces))
        app_logger.addHandler(console_handler)

    # Report generation can be turned up to DEBUG on its own, e.g. to see
    # which date filters were dropped as malformed.
    logging.getLogger(REPORTS_LOGGER).setLevel(reports_level)
    return app_logger


# To also see the SQL Tortoise emits:
# logging.getLogger("tortoise.db_client").setLevel(logging.DEBUG)

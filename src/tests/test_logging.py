import io
import logging

import pytest
from fastapi import status

from dealership_reports.core.config import REPORT_LOG_LEVEL
from dealership_reports.core.logging_config import PACKAGE_LOGGER, REPORTS_LOGGER, NamespaceFilter, configure_logging
from dealership_reports.features.reports.errors import UpstreamUnavailableError
from dealership_reports.features.reports.responses import handle_report_error


@pytest.fixture
def clean_package_logging():
    """
    Gives each test a package logger without handlers and puts the previous
    handlers and levels back afterwards, so the application's own console
    handler survives the test run.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    reports_logger = logging.getLogger(REPORTS_LOGGER)
    saved = (list(package_logger.handlers), package_logger.level, reports_logger.level)
    package_logger.handlers = []

    yield package_logger

    package_logger.handlers, package_logger.level, reports_logger.level = saved[0], saved[1], saved[2]


def console_handler(package_logger: logging.Logger) -> logging.Handler:
    return next(h for h in package_logger.handlers if getattr(h, "_dealership_reports", False))


def capture(package_logger: logging.Logger) -> io.StringIO:
    """Points the console handler at a buffer instead of stdout."""
    stream = io.StringIO()
    console_handler(package_logger).setStream(stream)
    return stream


def test_configure_logging_adds_one_handler(clean_package_logging):
    """
    Configuring twice, as the API and the CLI both do, leaves a single
    console handler on the package logger.
    """
    package_logger = configure_logging()
    configure_logging()

    handlers = [h for h in package_logger.handlers if getattr(h, "_dealership_reports", False)]
    assert package_logger is clean_package_logging
    assert len(handlers) == 1
    assert package_logger.level == logging.INFO


def test_report_level_defaults_to_setting(clean_package_logging):
    configure_logging()
    assert logging.getLogger(REPORTS_LOGGER).level == logging.getLevelName(REPORT_LOG_LEVEL)


def test_report_level_override(clean_package_logging):
    """
    Report generation can log at DEBUG while the rest of the package stays at INFO.
    """
    stream = capture(configure_logging(reports_level="DEBUG"))

    logging.getLogger(f"{REPORTS_LOGGER}.filters").debug("Ignoring malformed endDate value")
    logging.getLogger("dealership_reports.features.auth.security").debug("Decoded token")

    output = stream.getvalue()
    assert "dealership_reports.features.reports.filters" in output
    assert "Ignoring malformed endDate value" in output
    assert "Decoded token" not in output


def test_console_format(clean_package_logging):
    stream = capture(configure_logging())
    logging.getLogger("dealership_reports.main").info("Starting application...")

    line = stream.getvalue().strip()
    assert " - dealership_reports.main:" in line
    assert line.endswith(" - INFO - Starting application...")


def test_namespace_filter_on_console_handler(clean_package_logging):
    """
    Allowed namespaces become a NamespaceFilter on the console handler, which
    then drops records from every other part of the package.
    """
    package_logger = configure_logging(allowed_namespaces=[REPORTS_LOGGER])
    [ns_filter] = console_handler(package_logger).filters
    assert isinstance(ns_filter, NamespaceFilter)

    stream = capture(package_logger)
    logging.getLogger(f"{REPORTS_LOGGER}.suppliers.service").info("Loaded 3 supplier(s)")
    logging.getLogger("dealership_reports.features.auth.router").info("Issued report token")

    output = stream.getvalue()
    assert "Loaded 3 supplier(s)" in output
    assert "Issued report token" not in output


def test_namespace_filter_without_namespaces_allows_everything():
    ns_filter = NamespaceFilter()
    assert ns_filter.filter(logging.makeLogRecord({"name": "tortoise.db_client"}))
    assert ns_filter.filter(logging.makeLogRecord({"name": PACKAGE_LOGGER}))


def test_report_errors_are_logged_with_traceback(caplog):
    """
    The failure envelope stays generic, but the log names the report and
    carries the original exception.
    """
    caplog.set_level(logging.ERROR, logger=f"{REPORTS_LOGGER}.responses")
    error = UpstreamUnavailableError("connection refused")

    response = handle_report_error(error, "supplier-overview", "Supplier Overview")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    [record] = [r for r in caplog.records if r.name == f"{REPORTS_LOGGER}.responses"]
    assert record.levelno == logging.ERROR
    assert record.getMessage() == "Report Error [Supplier Overview]: connection refused"
    assert record.exc_info[1] is error
    assert b"connection refused" not in response.body

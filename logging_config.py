"""Structured logging configuration for the Nucleares exporter"""
import logging
import os
import sys
from typing import Any, Dict
import structlog
from structlog.stdlib import LoggerFactory
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper
from config import Config


# Per-request client logs would repeat every upstream poll
_QUIET_LOGGERS = ('uvicorn.access', 'httpx', 'httpcore')


def setup_structured_logging(config: Config) -> None:
    """Route structlog through stdlib logging, tagging every event with the service and upstream"""
    development = os.getenv("ENVIRONMENT", "production").lower() == "development"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            ConsoleRenderer() if development else JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=config.service_name, upstream=config.nucleares_url)

    handlers = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        handlers.append(logging.FileHandler(str(config.log_file)))

    logging.basicConfig(level=config.log_level, format="%(message)s", handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


def log_server_startup(logger: structlog.stdlib.BoundLogger, config: Config) -> None:
    """Log server startup with configuration details"""
    logger.info(
        "Server starting up",
        service_name=config.service_name,
        service_version=config.service_version,
        nucleares_url=config.nucleares_url,
        metric_prefix=config.metric_prefix,
        liveness_probe_enabled=config.liveness_probe_enabled,
        metrics_host=config.metrics_host,
        metrics_port=config.metrics_port,
        event_type="server_startup"
    )


def log_discovery(logger: structlog.stdlib.BoundLogger, get_count: int, post_count: int,
                  failed: int, duration: float) -> None:
    """Log the outcome of a discovery run"""
    logger.info(
        f"Discovered {get_count} Nucleares GET variables",
        get_variables=get_count,
        post_variables=post_count,
        failed=failed,
        discovery_time_seconds=round(duration, 3),
        event_type="variable_discovery"
    )


def log_refresh(logger: structlog.stdlib.BoundLogger, updated: int, failed: int, duration: float) -> None:
    """Log a completed refresh cycle"""
    logger.debug(
        "Metrics refresh completed",
        updated=updated,
        failed=failed,
        refresh_time_seconds=round(duration, 3),
        event_type="metrics_refresh"
    )


def log_error(logger: structlog.stdlib.BoundLogger, error: Exception, context: Dict[str, Any] = None) -> None:
    """Log error with structured context"""
    logger.error(
        "Error occurred",
        error=str(error),
        error_type=type(error).__name__,
        context=context or {},
        event_type="error",
        exc_info=True
    )

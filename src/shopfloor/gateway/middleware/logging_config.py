"""structlog setup

dev mode: pretty printed console output
json mode: one JSON object per line
Logfire APM is opt-in through GatewayConfig.send_to_logfire; without it the
gateway logs locally only.
"""

import logging

import structlog
from fastapi import FastAPI

from ..config import GatewayConfig


def setup_logging(config: GatewayConfig) -> None:
    """Configure structlog and route stdlib logging through it"""
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if config.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))


def setup_logfire(app: FastAPI, config: GatewayConfig) -> None:
    """Optional Logfire instrumentation

    A missing package or a failed configure degrades to local logging.
    """
    if not config.send_to_logfire:
        return
    try:
        import logfire

        logfire.configure()
        logfire.instrument_fastapi(app)
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            message="Logfire unavailable, logging locally only",
        )

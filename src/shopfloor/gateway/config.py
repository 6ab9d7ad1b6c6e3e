"""GatewayConfig -- gateway settings loaded from the environment"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


class GatewayConfig(BaseModel):
    """Gateway configuration

    Environment variables:
        SHOPFLOOR_LOG_FORMAT: dev / json
        SHOPFLOOR_LOG_LEVEL: stdlib level name
        SHOPFLOOR_SEED_DOWNTIME_REASONS: seed the default cause taxonomy at startup
        LOGFIRE_SEND_TO_LOGFIRE: enable Logfire APM
        SHOPFLOOR_HOST / SHOPFLOOR_PORT: uvicorn bind address
    """

    log_format: Literal["dev", "json"] = Field(default="dev")
    log_level: str = Field(default="INFO")
    seed_downtime_reasons: bool = Field(default=False)
    send_to_logfire: bool = Field(default=False)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3001, ge=1, le=65535)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() == "true"


def load_gateway_config() -> GatewayConfig:
    """Build GatewayConfig from environment variables

    Invalid values are logged and replaced by the defaults.
    """
    kwargs: dict = {
        "seed_downtime_reasons": _env_flag("SHOPFLOOR_SEED_DOWNTIME_REASONS"),
        "send_to_logfire": _env_flag("LOGFIRE_SEND_TO_LOGFIRE"),
    }

    if val := os.environ.get("SHOPFLOOR_LOG_FORMAT"):
        if val in ("dev", "json"):
            kwargs["log_format"] = val
        else:
            log.warning("invalid_log_format_config", value=val, fallback="dev")

    if val := os.environ.get("SHOPFLOOR_LOG_LEVEL"):
        kwargs["log_level"] = val.upper()

    if val := os.environ.get("SHOPFLOOR_HOST"):
        kwargs["host"] = val

    if val := os.environ.get("SHOPFLOOR_PORT"):
        try:
            port = int(val)
        except ValueError:
            port = None
        if port is not None and 1 <= port <= 65535:
            kwargs["port"] = port
        else:
            log.warning(
                "invalid_port_config",
                env_var="SHOPFLOOR_PORT",
                value=val,
                fallback=3001,
            )

    return GatewayConfig(**kwargs)

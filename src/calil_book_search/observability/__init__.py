"""Logfire observability for the Calil Book Search MCP Server."""

import logging

import logfire

from .config import ObservabilityConfig
from .decorators import trace_tool, trace_upstream_call

logger = logging.getLogger(__name__)


def initialize_observability(config: ObservabilityConfig | None = None) -> None:
    """Initialize Logfire with configuration."""
    config = config or ObservabilityConfig()

    if not config.enabled:
        logger.debug("Observability disabled via configuration")
        return

    logfire.configure(
        token=config.token or None,
        service_name=config.service_name,
        environment=config.environment,
        send_to_logfire=config.send_to_logfire,
        console=False if not config.console_output else None,
    )
    # Route stdlib logging through logfire so spans and logs correlate
    logging.getLogger().addHandler(logfire.LogfireLoggingHandler())
    logger.debug("Logfire configured for environment %s", config.environment)


__all__ = [
    "ObservabilityConfig",
    "initialize_observability",
    "trace_tool",
    "trace_upstream_call",
]

"""Tracing helpers for MCP tools and Calil API calls."""

import functools
from collections.abc import Callable
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import logfire


def trace_tool(tool_name: str):
    """Decorator to trace MCP tool execution."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(arguments: dict[str, Any], *args, **kwargs):
            with logfire.span(f"tool.execution.{tool_name}", tool_name=tool_name) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", arguments)

                try:
                    result = await func(arguments, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    raise

                span.set_attribute("tool.success", not result.get("isError", False))
                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                return result

        return wrapper

    return decorator


@contextmanager
def trace_upstream_call(endpoint: str, **attributes: Any):
    """Context manager for tracing one Calil API request."""
    with logfire.span(f"calil.{endpoint}", calil_endpoint=endpoint, **attributes) as span:
        try:
            yield span
        except Exception as e:
            span.set_attribute("calil.error", str(e))
            span.set_attribute("calil.error_type", type(e).__name__)
            raise


def _add_attributes(span, prefix: str, data: dict):
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)

"""Bright Track logging.

Structured JSON for deployed services, rich console output for development,
correlation ids per operation and masking of backend credentials.

Usage:
    from src.logutils import get_logger, with_context

    logger = get_logger(__name__)

    with with_context(operation="refresh_dashboards"):
        logger.info("Loaded dashboards", extra={"extra_data": {"count": 3}})
"""

from .config import (
    Environment,
    LogConfig,
    LogOutput,
    detect_environment,
    get_config,
    reset_config,
    set_config,
)
from .context import (
    ContextScope,
    LogContext,
    clear_context,
    get_context,
    get_correlation_id,
    set_context,
    update_context,
    with_context,
)
from .formatters import CompactFormatter, JSONFormatter, StandardFormatter
from .handlers import (
    BufferingHandler,
    RichConsoleHandler,
    SafeRotatingFileHandler,
    StreamHandlerWithFlush,
)
from .logger import (
    LoggerAdapter,
    build_handlers,
    configure_root_logger,
    get_logger,
    reset_logging,
    with_extra,
)
from .masking import MASK, SensitiveValue, is_sensitive_key, mask_dict, mask_sensitive_string

__all__ = [
    "get_logger",
    "configure_root_logger",
    "reset_logging",
    "build_handlers",
    "with_extra",
    "LoggerAdapter",
    "with_context",
    "get_context",
    "set_context",
    "clear_context",
    "get_correlation_id",
    "update_context",
    "LogContext",
    "ContextScope",
    "LogConfig",
    "LogOutput",
    "Environment",
    "detect_environment",
    "get_config",
    "set_config",
    "reset_config",
    "JSONFormatter",
    "StandardFormatter",
    "CompactFormatter",
    "RichConsoleHandler",
    "SafeRotatingFileHandler",
    "BufferingHandler",
    "StreamHandlerWithFlush",
    "mask_sensitive_string",
    "mask_dict",
    "is_sensitive_key",
    "SensitiveValue",
    "MASK",
]

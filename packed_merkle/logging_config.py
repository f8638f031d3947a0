"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Packed Merkle, a product of Garudex Labs

Logging configuration for packed-merkle.

Provides centralized structured logging setup with JSON output for production
and human-readable output for development. Supports correlation IDs so that
all bundle transfers belonging to one reconciliation session can be traced
together.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from structlog.types import EventDict


# Context variable for correlation ID
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add correlation ID to log events if present in context.

    Args:
        logger: Logger instance
        method_name: Name of the logging method
        event_dict: Event dictionary to modify

    Returns:
        Modified event dictionary with correlation_id if available
    """
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: Optional correlation ID. If None, generates a new UUID.

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear correlation ID from the current context."""
    correlation_id_var.set(None)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context, or None if not set."""
    return correlation_id_var.get()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    json_format: bool = True,
) -> None:
    """
    Configure structured logging for packed-merkle.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to log file. If None, logs only to stderr.
        json_format: If True, use JSON format. If False, use human-readable format.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(file_handler)
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(numeric_level)
        stderr_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(stderr_handler)

    processors: list = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_correlation_id,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance for a specific module.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Structured logger instance.
    """
    if not name.startswith("packed_merkle"):
        name = f"packed_merkle.{name}"
    return structlog.get_logger(name)


# Convenience functions for common logging patterns

def log_tree_mutation(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    leaf_digest: bytes,
    leaves: int,
    total: int,
    **kwargs: Any,
) -> None:
    """
    Log a push or delete that changed the tree.

    Args:
        logger: Logger instance
        operation: "push" or "delete"
        leaf_digest: Digest of the leaf that was added or removed
        leaves: Leaf count after the mutation
        total: Node count after the mutation
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "tree_mutation",
        "operation": operation,
        "leaf_digest": leaf_digest.hex(),
        "leaves": leaves,
        "total": total,
    }

    log_data.update(kwargs)

    logger.debug("tree_mutation", **log_data)


def log_bundle_transfer(
    logger: structlog.stdlib.BoundLogger,
    leaf_digest: Optional[bytes],
    position: Optional[int],
    success: bool,
    failure_reason: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """
    Log a bundle being absorbed (or refused) by a replica.

    Args:
        logger: Logger instance
        leaf_digest: Digest the bundle authenticates
        position: Array position the bundle targets, if it could be derived
        success: Whether the bundle was absorbed
        failure_reason: Reason for refusal if not successful
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "bundle_transfer",
        "success": success,
    }

    if leaf_digest is not None:
        log_data["leaf_digest"] = leaf_digest.hex()
    if position is not None:
        log_data["position"] = position
    if failure_reason is not None:
        log_data["failure_reason"] = failure_reason

    log_data.update(kwargs)

    if success:
        logger.debug("bundle_transfer", **log_data)
    else:
        logger.warning("bundle_transfer_refused", **log_data)


def log_tree_verification(
    logger: structlog.stdlib.BoundLogger,
    success: bool,
    leaves: int,
    total: int,
    failure_reason: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """
    Log a whole-tree consistency check.

    Args:
        logger: Logger instance
        success: Whether verification succeeded
        leaves: Leaf count of the verified tree
        total: Node count of the verified tree
        failure_reason: Reason for failure if not successful
        **kwargs: Additional context to log
    """
    log_data: Dict[str, Any] = {
        "event_type": "tree_verification",
        "success": success,
        "leaves": leaves,
        "total": total,
    }

    if failure_reason is not None:
        log_data["failure_reason"] = failure_reason

    log_data.update(kwargs)

    if success:
        logger.info("tree_verification", **log_data)
    else:
        logger.error("tree_verification_failed", **log_data)

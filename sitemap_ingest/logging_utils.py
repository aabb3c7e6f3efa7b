"""
Logging helpers for crawl requests and outcomes.

Request metadata arrives from callers and may carry credentials (cookies,
auth headers, API keys) or user content. Mask it before it reaches the log
stream, and emit crawl results as flat structured summaries.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Key substrings treated as sensitive. Substring matching, so "auth" also
# covers "authorization" and "x-auth-token".
DEFAULT_SENSITIVE_KEYS = frozenset(
    {
        "auth",
        "cookie",
        "token",
        "password",
        "secret",
        "credential",
        "apikey",
        "api_key",
        "session",
        "content",
        "body",
    }
)

# Longest error string kept in a summary record
MAX_SUMMARY_ERROR_LENGTH = 500


def mask_value(key: str, value: Any, sensitive_keys: frozenset[str] | None = None) -> Any:
    """
    Mask a value if its key names sensitive data.

    Args:
        key: Field name the value is stored under
        value: Value to mask
        sensitive_keys: Key substrings to treat as sensitive

    Returns:
        Masked value if sensitive, otherwise the value with nested
        containers processed recursively
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_KEYS

    key_lower = key.lower()
    if any(s in key_lower for s in sensitive_keys):
        if isinstance(value, str) and len(value) > 20:
            return f"{value[:10]}...({len(value)} chars)"
        if isinstance(value, (list, tuple, dict)):
            return f"[{type(value).__name__}: masked]"
        return "***"

    if isinstance(value, dict):
        return {k: mask_value(str(k), v, sensitive_keys) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [mask_value(key, item, sensitive_keys) for item in value]

    return value


def safe_log_event(
    event: dict[str, Any],
    sensitive_keys: frozenset[str] | None = None,
) -> dict[str, Any]:
    """
    Return a copy of a request payload with sensitive values masked.

    Args:
        event: Request payload or metadata dictionary
        sensitive_keys: Optional set of key substrings to treat as sensitive

    Returns:
        A masked copy safe for logging

    Example:
        ```python
        logger.info(f"Crawl request: {safe_log_event(payload)}")
        ```
    """
    if not isinstance(event, dict):
        return {"_raw": str(event)[:100]}

    try:
        return {str(k): mask_value(str(k), v, sensitive_keys) for k, v in event.items()}
    except RecursionError:
        logger.warning("Failed to mask event: structure nested too deeply")
        return {"_error": "Could not safely serialize event", "_keys": list(event.keys())[:10]}


def log_summary(
    operation: str,
    *,
    success: bool = True,
    duration_ms: float | None = None,
    item_count: int | None = None,
    error: str | None = None,
    **kwargs: Any,
) -> dict[str, Any]:
    """
    Build a structured log record for a finished operation.

    Args:
        operation: Operation name (e.g., "sitemap_crawl")
        success: Whether the operation succeeded
        duration_ms: Optional duration in milliseconds
        item_count: Optional count of items processed
        error: Optional error message (truncated)
        **kwargs: Extra fields; primitives are kept, sequences become counts

    Returns:
        Dictionary suitable for structured logging
    """
    summary: dict[str, Any] = {
        "operation": operation,
        "success": success,
    }

    if duration_ms is not None:
        summary["duration_ms"] = round(duration_ms, 2)

    if item_count is not None:
        summary["item_count"] = item_count

    if error:
        summary["error"] = error[:MAX_SUMMARY_ERROR_LENGTH]

    for key, value in kwargs.items():
        if isinstance(value, (str, int, float, bool)):
            summary[key] = value
        elif isinstance(value, (list, tuple)):
            summary[key] = len(value)

    return summary

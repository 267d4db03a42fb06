"""Secure logging utilities for prbot.

Provides sanitized logging that removes credentials like GitHub tokens and
Authorization headers before outputting to logs.
"""
import json
import logging
import re
from typing import Any

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger('prbot')


def set_log_level(level: str) -> None:
    """Apply a level name (e.g. ``"DEBUG"``) to the prbot logger."""
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def sanitize_text(text: str) -> str:
    """Remove credentials from text.

    Args:
        text: Input text that may contain sensitive data

    Returns:
        Sanitized text with sensitive patterns replaced
    """
    if not text:
        return text

    # GitHub tokens (classic, OAuth, app and fine-grained)
    text = re.sub(r'gh[pousr]_[A-Za-z0-9]{20,}', '<github-token>', text)
    text = re.sub(r'github_pat_[A-Za-z0-9_]{20,}', '<github-token>', text)

    # Authorization header values
    text = re.sub(r'(?i)(authorization["\']?\s*[:=]\s*["\']?)(bearer|token|basic)\s+[^\s"\']+', r'\1<redacted>', text)

    return text


def safe_json(obj: Any, max_length: int = 1000) -> str:
    """Safely serialize object to JSON with sensitive data sanitized.

    Args:
        obj: Object to serialize
        max_length: Maximum length of output string

    Returns:
        Sanitized JSON string
    """
    try:
        json_str = json.dumps(obj, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return "<unable to serialize>"

    sanitized = sanitize_text(json_str)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "... [truncated]"
    return sanitized


def log_info(message: str, **kwargs) -> None:
    """Log info message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.info(f"{message} | Context: {context}")
    else:
        logger.info(message)


def log_warning(message: str, **kwargs) -> None:
    """Log warning message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.warning(f"{message} | Context: {context}")
    else:
        logger.warning(message)


def log_error(message: str, **kwargs) -> None:
    """Log error message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.error(f"{message} | Context: {context}")
    else:
        logger.error(message)


def log_debug(message: str, **kwargs) -> None:
    """Log debug message with optional sanitized context."""
    if kwargs:
        context = safe_json(kwargs)
        logger.debug(f"{message} | Context: {context}")
    else:
        logger.debug(message)


def log_api_response(operation: str, status_code: int) -> None:
    """Log a completed GitHub API call at debug level."""
    log_debug(f"API {operation} completed", status_code=status_code)


def log_source_dump(path: str, data: bytes, max_bytes: int = 2000) -> None:
    """Log the raw content of a file the formatter rejected.

    Args:
        path: Repository path of the file
        data: Raw bytes as fetched from the remote
        max_bytes: Bytes kept before the dump is truncated
    """
    text = data[:max_bytes].decode("utf-8", errors="replace")
    if len(data) > max_bytes:
        text += f"\n... [truncated {len(data) - max_bytes} bytes]"
    logger.error(f"Raw content of {path}:\n{sanitize_text(text)}")


def log_step(step: str, **kwargs) -> None:
    """Log workflow progress through the PR pipeline.

    Args:
        step: Current workflow step
        **kwargs: Additional context
    """
    log_info(f"Workflow step: {step}", **kwargs)

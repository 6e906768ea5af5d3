"""
Centralized logging configuration for the application

Usage:
    from utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Planning turn")
    logger.error("Failed to persist messages", exc_info=True)
"""
import logging
import sys
from typing import Optional
from config import Config

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging(level: Optional[str] = None):
    """
    Configure logging for the entire application
    Call this once at startup (e.g., in main.py)

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to Config.LOG_LEVEL.
    """
    global _configured

    if _configured:
        return

    if level is None:
        level = Config.LOG_LEVEL

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=True
    )

    # Quiet HTTP client chatter (every gateway call would log twice)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    # LiteLLM can be very noisy
    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    logging.getLogger("litellm").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    _configured = True

    logging.getLogger().info(f"Logging configured at {level} level")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module

    Args:
        name: Usually __name__ of the calling module
    """
    if not _configured:
        configure_logging()

    return logging.getLogger(name)


def log_api_call(logger: logging.Logger, method: str, url: str, status: Optional[int], duration_ms: float):
    """Log an outbound API call with consistent format"""
    logger.info(
        f"API {method} {url} - {status} ({duration_ms:.0f}ms)",
        extra={
            "method": method,
            "url": url,
            "status": status,
            "duration_ms": duration_ms,
            "type": "api_call"
        }
    )


def log_tool_execution(logger: logging.Logger, tool_name: str, success: bool, duration_ms: float, error: Optional[str] = None):
    """Log a tool execution with consistent format"""
    status = "✅" if success else "❌"
    error_str = f" - {error}" if error else ""
    logger.info(
        f"{status} Tool {tool_name} ({duration_ms:.0f}ms){error_str}",
        extra={
            "tool_name": tool_name,
            "success": success,
            "duration_ms": duration_ms,
            "error": error,
            "type": "tool_execution"
        }
    )


def log_llm_call(logger: logging.Logger, model: str, tokens: Optional[int], duration_ms: float, stream: bool = False):
    """Log an LLM call with consistent format"""
    stream_str = " (streaming)" if stream else ""
    tokens_str = f" - {tokens} tokens" if tokens else ""
    logger.info(
        f"LLM {model}{stream_str}{tokens_str} ({duration_ms:.0f}ms)",
        extra={
            "model": model,
            "tokens": tokens,
            "duration_ms": duration_ms,
            "stream": stream,
            "type": "llm_call"
        }
    )

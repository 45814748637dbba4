"""
Logging configuration for DDNS Updater.

This module provides logging setup with support for console and file output.
Provider API tokens are automatically masked in log messages.
"""

from __future__ import annotations

import logging
import logging.handlers
import re
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import Any, Final

    from ddns_updater.config import LoggingConfig


# Pattern to match sensitive tokens in log messages
# Each tuple is (pattern, replacement)
# For partial masking, capture the prefix to keep and mask the rest
SENSITIVE_PATTERNS: Final[list[tuple[re.Pattern[str], str]]] = [
    # Authorization header (Bearer token sent to provider APIs)
    # Keep first 6 characters, mask the rest
    (
        re.compile(
            r"((?:Authorization:\s*)?Bearer\s+)(.{0,6})([^\s\"']*)", re.IGNORECASE,
        ),
        r"\1\2******",
    ),
    # token=..., token="...", token: ... (config dumps, URLs)
    # Mask completely
    (
        re.compile(r"""(token["']?\s*[=:]\s*["']?)([^\s,"'&]+)""", re.IGNORECASE),
        r"\1******",
    ),
]


# Constants
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"


# Replacement for masked values
MASK: Final[str] = "******"

# Argument types formatted as-is; anything else is masked by its str() form
_PLAIN_ARG_TYPES: Final[tuple[type, ...]] = (int, float, bool, type(None))


class SensitiveFilter(logging.Filter):
    """
    A logging filter that masks sensitive information.

    Provider tokens are replaced with asterisks wherever they appear in a
    message or its arguments: by pattern (Bearer headers, `token=` fields)
    and, when the configured token values are passed in, by literal match.

    Parameters
    ----------
    secrets : Iterable[str], optional
        Literal secret values to mask, such as the configured API tokens.
    """

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        # Longest first so a token containing another one is masked whole
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def _mask_sensitive(self, value: str) -> str:
        """
        Apply all sensitive patterns and literal secrets to a string.

        Parameters
        ----------
        value : str
            The string to process.

        Returns
        -------
        str
            The string with sensitive data masked.
        """
        result = value
        for pattern, replacement in SENSITIVE_PATTERNS:
            result = pattern.sub(replacement, result)
        for secret in self._secrets:
            result = result.replace(secret, MASK)
        return result

    def _mask_arg(self, arg: Any) -> Any:
        """
        Mask one formatting argument.

        Non-string objects (headers, requests, exceptions) are only replaced
        by their masked text when that text differs from `str(arg)`.
        """
        if isinstance(arg, str):
            return self._mask_sensitive(arg)
        if isinstance(arg, _PLAIN_ARG_TYPES):
            return arg
        text = str(arg)
        masked = self._mask_sensitive(text)
        return arg if masked == text else masked

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter and modify log record to mask sensitive data.

        This handles:
        - record.msg (for standard log messages)
        - record.args (for %-style formatted messages)

        Parameters
        ----------
        record : logging.LogRecord
            The log record to process.

        Returns
        -------
        bool
            Always returns True (record is always logged).
        """
        # Mask record.msg
        if record.msg:
            record.msg = self._mask_sensitive(str(record.msg))

        # Mask record.args
        if record.args:
            if isinstance(record.args, dict):
                # Dict-style formatting: %(key)s
                record.args = {k: self._mask_arg(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                # Tuple-style formatting: %s, %d, etc.
                record.args = tuple(self._mask_arg(arg) for arg in record.args)

        return True


def _configure_handler(handler: logging.Handler, secrets: Iterable[str]) -> None:
    """
    Configure a logging handler with formatter and sensitive filter.

    Parameters
    ----------
    handler : logging.Handler
        The handler to configure.
    secrets : Iterable[str]
        Literal secret values for the sensitive filter.
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    sensitive_filter = SensitiveFilter(secrets)

    handler.setFormatter(formatter)
    handler.addFilter(sensitive_filter)


def setup_logging(config: LoggingConfig, secrets: Iterable[str] = ()) -> None:
    """
    Set up logging based on configuration.

    Parameters
    ----------
    config : LoggingConfig
        Logging configuration.
    secrets : Iterable[str], optional
        Literal secret values (API tokens) masked in every handler.
    """
    secrets = tuple(secrets)

    # Get the root logger for the package
    logger = logging.getLogger("ddns_updater")
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    # Clear any existing handlers
    logger.handlers.clear()

    # Console handler
    console_handler = logging.StreamHandler()
    _configure_handler(console_handler, secrets)
    logger.addHandler(console_handler)

    # File handler (if enabled)
    if config.file_enabled:
        log_path = config.file_path_as_path
        try:
            # Ensure log directory exists
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.WatchedFileHandler(
                str(log_path),
                encoding="utf-8",
                delay=False,
            )
            _configure_handler(file_handler, secrets)
            logger.addHandler(file_handler)
            logger.info('File logging enabled: "%s".', log_path)
        except OSError as e:
            # Re-raise as a fatal error after logging to console
            logger.critical("Failed to enable file logging: %s", e)
            sys.exit(1)

    # Prevent propagation to root logger
    logger.propagate = False

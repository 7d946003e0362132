"""
Logging for the Polymarket core library.

Every library module logs through a child of the ``polymarket_core`` logger.
``setup_logger`` attaches one stream handler to that root and installs a
``SecretFilter`` on it, so signed headers, API secrets, passphrases and
private keys are masked before a record is formatted, whichever child
logger emitted it.
"""

import logging
import re
import sys
from typing import Iterable, TextIO

ROOT_LOGGER_NAME = "polymarket_core"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
REDACTED = "***"

# key=value, key: value and "key": "value" forms of secret-bearing fields
SECRET_FIELD_PATTERN = re.compile(
    r"""(?P<key>['"]?(?:POLY_\w*SIGNATURE|POLY_\w*PASSPHRASE|\w*private_key|\w*secret|\w*passphrase)['"]?\s*[:=]\s*['"]?)"""
    r"""(?P<value>[^'"\s,}]+)""",
    re.IGNORECASE,
)


class SecretFilter(logging.Filter):
    """
    Mask secrets in log messages.

    Values of secret-bearing fields are masked by name. Values passed as
    ``secrets`` are masked wherever they appear; a private key is matched
    with and without its ``0x`` prefix. Transaction hashes and condition IDs
    look like private keys, so keys are only masked when registered here.

    Example:
        ```python
        handler.addFilter(SecretFilter([config.private_key]))
        ```
    """

    def __init__(self, secrets: Iterable[str | None] = ()) -> None:
        super().__init__()
        values = set()
        for secret in secrets:
            if not secret:
                continue
            values.add(secret)
            if secret.startswith("0x"):
                values.add(secret[2:])
        self._secrets = sorted(values, key=len, reverse=True)

    def redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return SECRET_FIELD_PATTERN.sub(lambda m: m.group("key") + REDACTED, text)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int | str = logging.INFO,
    format_string: str | None = None,
    stream: TextIO | None = None,
    secrets: Iterable[str | None] = (),
) -> logging.Logger:
    """
    Setup and configure logger.

    Replaces any handler installed by an earlier call, so it is safe to
    call again with a new level or secrets.

    Args:
        name: Logger name
        level: Logging level (INFO, DEBUG, etc.)
        format_string: Custom format string
        stream: Output stream (default: stderr)
        secrets: Values masked in every message (see ``PolymarketConfig.secrets``)

    Returns:
        Configured logger instance

    Example:
        ```python
        config = get_polymarket_config()
        logger = setup_logger(level=logging.DEBUG, secrets=config.secrets)
        ```
    """
    logger = logging.getLogger(name)

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(SecretFilter(secrets))
    logger.addHandler(handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Child of the library logger, e.g. ``get_logger("relay")`` -> ``polymarket_core.relay``."""
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)

"""
Logging configuration for the relay process.
"""

import logging
from typing import Iterable

import discord

_MASK = "***"


class RedactionFilter(logging.Filter):
    """Log filter that masks secrets before output."""

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def redact(self, text: str) -> str:
        for secret in self.secrets:
            text = text.replace(secret, _MASK)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        record.msg = self.redact(record.getMessage())
        record.args = None
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging with discord.py's handler and formatter."""
    discord.utils.setup_logging(level=getattr(logging, level.upper(), logging.INFO), root=True)


def redact_secrets(secrets: Iterable[str]) -> RedactionFilter:
    """Mask the given secrets in everything the root handlers emit."""
    redaction = RedactionFilter(secrets)
    for handler in logging.getLogger().handlers:
        handler.addFilter(redaction)
    return redaction

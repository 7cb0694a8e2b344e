"""
Error taxonomy for the Discord RAG relay.
"""

from typing import List, Optional

from .data_models import FailureKind


class RelayError(Exception):
    """Base class for relay errors."""

    kind: Optional[FailureKind] = None


class ConfigError(RelayError, ValueError):
    """Raised when a configuration value is malformed."""

    kind = FailureKind.CONFIG_MISSING


class ConfigMissing(ConfigError):
    """Raised when one or more required settings are absent."""

    def __init__(self, fields: List[str]):
        self.fields = list(fields)
        super().__init__(f"Missing required settings: {', '.join(self.fields)}")

    @property
    def field(self) -> str:
        return self.fields[0]


class StoreUnavailable(RelayError):
    """Raised when the embeddings collection cannot be queried."""

    kind = FailureKind.STORE_UNAVAILABLE


class DeliveryFailed(RelayError):
    """Raised when a message cannot be sent to or edited in Discord."""

    kind = FailureKind.DELIVERY_FAILED

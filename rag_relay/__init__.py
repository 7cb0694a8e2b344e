"""
Discord RAG Relay - retrieval-augmented answers for a Discord bot

This package answers questions addressed to a Discord bot by retrieving
passages from a named embeddings collection, adding them to a system prompt
and relaying a chat model's answer back to the channel.
"""

from .config import RelayConfig
from .data_models import (
    AssembledPrompt,
    CompletionResult,
    FailureKind,
    InboundMessage,
    RelayOutcome,
    RelayState,
    RetrievedPassage,
)
from .exceptions import (
    ConfigError,
    ConfigMissing,
    DeliveryFailed,
    RelayError,
    StoreUnavailable,
)
from .completion_client import CompletionClient
from .llama_integration import LLMIntegration
from .prompt_assembler import PromptAssembler
from .relay import DiscordRelay
from .relay_system import RelaySystem
from .runtime import RelayDispatcher
from .vector_store import HttpVectorStore, LocalVectorStore, VectorStoreClient, create_vector_store

__all__ = [
    "RelayConfig",
    "AssembledPrompt",
    "CompletionResult",
    "FailureKind",
    "InboundMessage",
    "RelayOutcome",
    "RelayState",
    "RetrievedPassage",
    "ConfigError",
    "ConfigMissing",
    "DeliveryFailed",
    "RelayError",
    "StoreUnavailable",
    "CompletionClient",
    "LLMIntegration",
    "PromptAssembler",
    "DiscordRelay",
    "RelaySystem",
    "RelayDispatcher",
    "HttpVectorStore",
    "LocalVectorStore",
    "VectorStoreClient",
    "create_vector_store",
]

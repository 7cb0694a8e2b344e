"""
Configuration management for the Discord RAG relay.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ConfigError, ConfigMissing

DEFAULT_ERROR_MESG = "Sorry, I am not able to answer that right now. Please try again later."
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. Answer the user's question using the context below. "
    "If the context does not contain the answer, say that you do not know."
)

STORE_FAILURE_POLICIES = ("fail_closed", "degrade")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RelayConfig:
    """Settings shared by every request, loaded once at startup."""

    discord_token: str
    bot_id: str
    collection_name: str
    llm_api_key: str
    error_mesg: str = DEFAULT_ERROR_MESG
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    llm_api_base: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-3.5-turbo-16k"
    embedding_model: str = "text-embedding-ada-002"
    vector_store_url: Optional[str] = None
    vector_store_api_key: Optional[str] = None
    vector_store_path: str = "./filestore/collections"
    top_k: int = 5
    min_score: float = 0.75
    max_prompt_chars: int = 30000
    store_timeout: float = 10.0
    completion_timeout: float = 30.0
    completion_retries: int = 0
    max_concurrency: int = 4
    store_failure_policy: str = "fail_closed"
    require_context: bool = False
    typing_placeholder: str = "Typing ..."
    reply_chunk_size: int = 1800
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        """Create configuration from environment variables.

        Each setting is looked up by its lower-case name first and then by
        the upper-case variant, so both ``discord_token`` and
        ``DISCORD_TOKEN`` work.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            RelayConfig: Configuration loaded from the environment

        Raises:
            ConfigMissing: If required settings are missing or empty
            ConfigError: If a numeric setting cannot be parsed
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: Optional[str] = None) -> Optional[str]:
            value = env.get(name)
            if value is None or not value.strip():
                value = env.get(name.upper())
            if value is None or not value.strip():
                return default
            return value

        discord_token = get("discord_token")
        bot_id = get("bot_id")
        collection_name = get("collection_name")
        llm_api_key = get("llm_api_key") or get("openai_api_key")

        missing_vars = []
        if not discord_token:
            missing_vars.append("discord_token")
        if not bot_id:
            missing_vars.append("bot_id")
        if not collection_name:
            missing_vars.append("collection_name")
        if not llm_api_key:
            missing_vars.append("llm_api_key")

        if missing_vars:
            raise ConfigMissing(missing_vars)

        return cls(
            discord_token=discord_token.strip(),
            bot_id=bot_id.strip(),
            collection_name=collection_name.strip(),
            llm_api_key=llm_api_key.strip(),
            error_mesg=get("error_mesg", DEFAULT_ERROR_MESG),
            system_prompt=get("system_prompt", DEFAULT_SYSTEM_PROMPT),
            llm_api_base=get("llm_api_base", cls.llm_api_base),
            llm_model=get("llm_model", cls.llm_model),
            embedding_model=get("embedding_model", cls.embedding_model),
            vector_store_url=get("vector_store_url"),
            vector_store_api_key=get("vector_store_api_key"),
            vector_store_path=get("vector_store_path", cls.vector_store_path),
            top_k=_parse_int("top_k", get("top_k"), cls.top_k),
            min_score=_parse_float("min_score", get("min_score"), cls.min_score),
            max_prompt_chars=_parse_int("max_prompt_chars", get("max_prompt_chars"), cls.max_prompt_chars),
            store_timeout=_parse_float("store_timeout", get("store_timeout"), cls.store_timeout),
            completion_timeout=_parse_float(
                "completion_timeout", get("completion_timeout"), cls.completion_timeout
            ),
            completion_retries=_parse_int(
                "completion_retries", get("completion_retries"), cls.completion_retries
            ),
            max_concurrency=_parse_int("max_concurrency", get("max_concurrency"), cls.max_concurrency),
            store_failure_policy=get("store_failure_policy", cls.store_failure_policy).strip().lower(),
            require_context=get("require_context", "false").strip().lower() in _TRUE_VALUES,
            # An explicitly empty placeholder disables it, so read it raw.
            typing_placeholder=env.get(
                "typing_placeholder", env.get("TYPING_PLACEHOLDER", cls.typing_placeholder)
            ),
            reply_chunk_size=_parse_int("reply_chunk_size", get("reply_chunk_size"), cls.reply_chunk_size),
            log_level=get("log_level", cls.log_level).strip().upper(),
        )

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigError: If configuration values are invalid
        """
        if not self.bot_id.isdigit():
            raise ConfigError("bot_id must be a numeric Discord user ID")

        if not self.llm_api_base.startswith(("http://", "https://")):
            raise ConfigError("llm_api_base must be a valid URL")

        if self.vector_store_url and not self.vector_store_url.startswith(("http://", "https://")):
            raise ConfigError("vector_store_url must be a valid URL")

        if self.top_k < 1:
            raise ConfigError("top_k must be at least 1")

        if not (0.0 <= self.min_score <= 1.0):
            raise ConfigError("min_score must be between 0.0 and 1.0")

        if self.max_prompt_chars < 1:
            raise ConfigError("max_prompt_chars must be positive")

        if self.store_timeout <= 0 or self.completion_timeout <= 0:
            raise ConfigError("Timeouts must be positive")

        if self.completion_retries < 0:
            raise ConfigError("completion_retries cannot be negative")

        if self.max_concurrency < 1:
            raise ConfigError("max_concurrency must be at least 1")

        if self.store_failure_policy not in STORE_FAILURE_POLICIES:
            raise ConfigError(
                f"store_failure_policy must be one of: {', '.join(STORE_FAILURE_POLICIES)}"
            )

        if not (1 <= self.reply_chunk_size <= 2000):
            raise ConfigError("reply_chunk_size must be between 1 and 2000")

        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")

    @property
    def secrets(self):
        """Values that must never appear in logs."""
        return [s for s in (self.discord_token, self.llm_api_key, self.vector_store_api_key) if s]


def _parse_int(name: str, value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _parse_float(name: str, value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value.strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}")

"""
Data models for the Discord RAG relay.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

CONTEXT_HEADER = "Context:"
QUESTION_PREFIX = "Question: "


class FailureKind(str, Enum):
    """Reasons a request can fail."""

    CONFIG_MISSING = "config_missing"
    STORE_UNAVAILABLE = "store_unavailable"
    RATE_LIMITED = "rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    TIMEOUT = "timeout"
    DELIVERY_FAILED = "delivery_failed"


class RelayState(str, Enum):
    """Steps a message goes through in the relay."""

    IGNORED = "ignored"
    RECEIVED = "received"
    CONTEXT_FETCHED = "context_fetched"
    PROMPT_BUILT = "prompt_built"
    ANSWER_GENERATED = "answer_generated"
    REPLIED = "replied"
    FAILED = "failed"


@dataclass(frozen=True)
class InboundMessage:
    """A Discord message as seen by the relay."""

    channel_id: int
    author_id: int
    raw_text: str
    mentions_bot: bool
    is_direct: bool = False
    author_is_bot: bool = False
    message_id: Optional[int] = None
    bot_id: Optional[str] = None

    @property
    def triggers(self) -> bool:
        """Whether this message should be answered."""
        if self.author_is_bot:
            return False
        return self.mentions_bot or self.is_direct

    @property
    def question(self) -> str:
        """Message text with the bot's own mention removed.

        Mentions of other users are part of the question and are kept.
        """
        text = self.raw_text
        if self.bot_id:
            text = re.sub(rf"<@!?{re.escape(self.bot_id)}>", "", text)
        return text.strip()


@dataclass(frozen=True)
class RetrievedPassage:
    """A passage returned by the embeddings collection."""

    text: str
    similarity_score: float
    source_id: str = ""

    def __post_init__(self):
        """Validate passage data after initialization."""
        if not self.text.strip():
            raise ValueError("Passage text cannot be empty")


@dataclass(frozen=True)
class AssembledPrompt:
    """System prompt, retrieved context and question ready for the model."""

    system_prompt: str
    passages: Tuple[RetrievedPassage, ...]
    question: str
    delimiter: str = "\n---\n"
    dropped: int = 0

    @property
    def context(self) -> str:
        return self.delimiter.join(p.text for p in self.passages)

    @property
    def system_message(self) -> str:
        """System prompt followed by the context section."""
        return f"{self.system_prompt}\n\n{CONTEXT_HEADER}\n{self.context}"

    @property
    def text(self) -> str:
        """Full rendering of the prompt."""
        return f"{self.system_message}\n\n{QUESTION_PREFIX}{self.question}"

    def __len__(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class CompletionResult:
    """Either generated text or the reason none was produced."""

    text: Optional[str] = None
    failure: Optional[FailureKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def succeeded(cls, text: str) -> "CompletionResult":
        return cls(text=text)

    @classmethod
    def failed(cls, kind: FailureKind, detail: str = "") -> "CompletionResult":
        return cls(failure=kind, detail=detail)


@dataclass
class RelayOutcome:
    """What the relay did with one inbound message."""

    state: RelayState
    reply_text: Optional[str] = None
    failure: Optional[FailureKind] = None
    delivered: bool = False
    passages: List[RetrievedPassage] = field(default_factory=list)

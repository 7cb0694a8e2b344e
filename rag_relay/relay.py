"""
Per-message orchestration: retrieve context, ask the model, reply in Discord.
"""

import logging
from typing import List, Optional

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
from .exceptions import DeliveryFailed, StoreUnavailable
from .prompt_assembler import PromptAssembler

logger = logging.getLogger(__name__)


def split_into_chunks(text: str, limit: int = 1800) -> List[str]:
    """Split text into chunks of at most `limit` characters."""
    return [text[i:i + limit] for i in range(0, len(text), limit)]


class DiscordRelay:
    """Answers one inbound message with retrieved context and the chat model.

    ``handle`` always finishes with a reply (the answer or the configured
    error message) for a triggering message, and never raises.
    """

    def __init__(self, config: RelayConfig, store, completion_client, sender, assembler: Optional[PromptAssembler] = None):
        """Initialize the relay.

        Args:
            config: Relay configuration
            store: VectorStoreClient used for retrieval
            completion_client: CompletionClient used for answers
            sender: Object with async ``send(channel_id, content)`` and
                ``edit(channel_id, message_id, content)``
            assembler: Prompt assembler, built from the config if omitted
        """
        self.config = config
        self.store = store
        self.completion_client = completion_client
        self.sender = sender
        self.assembler = assembler or PromptAssembler(max_chars=config.max_prompt_chars)

    async def handle(self, message: InboundMessage) -> RelayOutcome:
        """Run the pipeline for one message."""
        if not message.triggers:
            logger.debug("Ignored message in channel %s", message.channel_id)
            return RelayOutcome(state=RelayState.IGNORED)

        logger.info("Received message from %s", message.channel_id)
        placeholder_id = await self._send_placeholder(message.channel_id)

        try:
            outcome = await self._answer(message)
        except Exception:
            logger.exception("Unexpected error while answering message in %s", message.channel_id)
            outcome = RelayOutcome(state=RelayState.FAILED, failure=FailureKind.MODEL_UNAVAILABLE)

        if outcome.state == RelayState.FAILED:
            outcome.reply_text = self.config.error_mesg

        outcome.delivered = await self._deliver(message.channel_id, placeholder_id, outcome.reply_text)
        return outcome

    async def _answer(self, message: InboundMessage) -> RelayOutcome:
        question = message.question
        if not question:
            logger.info("Message in %s has no question after removing mentions", message.channel_id)
            return RelayOutcome(state=RelayState.FAILED)

        passages = await self._fetch_context(question)
        if passages is None:
            return RelayOutcome(state=RelayState.FAILED, failure=FailureKind.STORE_UNAVAILABLE)
        self._transition(message, RelayState.CONTEXT_FETCHED)

        if not passages and self.config.require_context:
            logger.info("No relevant context for question in %s", message.channel_id)
            return RelayOutcome(state=RelayState.FAILED)

        prompt = self.assembler.assemble(self.config.system_prompt, passages, question)
        if prompt.dropped:
            logger.info("Dropped %d passage(s) to fit the prompt budget", prompt.dropped)
        self._transition(message, RelayState.PROMPT_BUILT)

        result = await self._complete(prompt)
        if not result.ok:
            return RelayOutcome(
                state=RelayState.FAILED,
                failure=result.failure,
                passages=list(prompt.passages),
            )
        self._transition(message, RelayState.ANSWER_GENERATED)

        return RelayOutcome(
            state=RelayState.REPLIED,
            reply_text=result.text,
            passages=list(prompt.passages),
        )

    @staticmethod
    def _transition(message: InboundMessage, state: RelayState) -> None:
        logger.debug("Message %s in %s -> %s", message.message_id, message.channel_id, state.value)

    async def _fetch_context(self, question: str) -> Optional[List[RetrievedPassage]]:
        """Return passages, or None when the store failed and the relay fails closed."""
        try:
            return await self.store.query(self.config.collection_name, question, self.config.top_k)
        except StoreUnavailable as e:
            logger.error("Vector search returned an error: %s", e)
            if self.config.store_failure_policy == "degrade":
                logger.warning("Continuing without retrieved context")
                return []
            return None

    async def _complete(self, prompt: AssembledPrompt) -> CompletionResult:
        attempts = 1 + self.config.completion_retries
        result = None
        for attempt in range(1, attempts + 1):
            result = await self.completion_client.complete(prompt)
            if result.ok:
                break
            logger.warning(
                "Completion attempt %d/%d failed: %s", attempt, attempts, result.failure.value
            )
        return result

    async def _send_placeholder(self, channel_id: int) -> Optional[int]:
        if not self.config.typing_placeholder:
            return None
        try:
            return await self.sender.send(channel_id, self.config.typing_placeholder)
        except DeliveryFailed as e:
            logger.warning("Could not send placeholder to %s: %s", channel_id, e)
        except Exception:
            logger.exception("Unexpected error sending placeholder to %s", channel_id)
        return None

    async def _deliver(self, channel_id: int, placeholder_id: Optional[int], text: str) -> bool:
        """Post the reply, editing the placeholder into the first chunk.

        Delivery failures are logged and not retried, to avoid duplicate replies.
        """
        chunks = split_into_chunks(text, self.config.reply_chunk_size)
        try:
            if placeholder_id is not None:
                await self.sender.edit(channel_id, placeholder_id, chunks[0])
            else:
                await self.sender.send(channel_id, chunks[0])
            for chunk in chunks[1:]:
                await self.sender.send(channel_id, chunk)
        except DeliveryFailed as e:
            logger.error("Could not deliver reply to %s: %s", channel_id, e)
            return False
        except Exception:
            logger.exception("Unexpected error delivering reply to %s", channel_id)
            return False
        return True

"""
Sends assembled prompts to the language model.
"""

import asyncio
import logging

import httpx
import openai

from .data_models import AssembledPrompt, CompletionResult, FailureKind

logger = logging.getLogger(__name__)


def classify_error(error: BaseException) -> FailureKind:
    """Map an exception raised by the model client to a failure kind."""
    if isinstance(error, asyncio.TimeoutError):
        return FailureKind.TIMEOUT
    if isinstance(error, openai.RateLimitError):
        return FailureKind.RATE_LIMITED
    if isinstance(error, openai.APITimeoutError):
        return FailureKind.TIMEOUT
    if isinstance(error, openai.APIStatusError) and error.status_code == 429:
        return FailureKind.RATE_LIMITED
    if isinstance(error, httpx.TimeoutException):
        return FailureKind.TIMEOUT
    return FailureKind.MODEL_UNAVAILABLE


class CompletionClient:
    """Single request/response call to the chat model with a bounded timeout."""

    def __init__(self, llm_integration, timeout: float = 30.0):
        """Initialize the client.

        Args:
            llm_integration: Object with an async ``generate_chat(system_message, question)``
            timeout: Seconds to wait for an answer
        """
        self.llm_integration = llm_integration
        self.timeout = timeout

    async def complete(self, prompt: AssembledPrompt) -> CompletionResult:
        """Generate an answer for the prompt.

        Never raises for a model failure; the result carries the failure kind
        instead. An empty answer counts as the model being unavailable.
        """
        try:
            text = await asyncio.wait_for(
                self.llm_integration.generate_chat(prompt.system_message, prompt.question),
                timeout=self.timeout,
            )
        except Exception as e:
            kind = classify_error(e)
            logger.error("Completion failed (%s): %s", kind.value, e)
            return CompletionResult.failed(kind, str(e))

        if not text or not text.strip():
            logger.error("Completion returned an empty answer")
            return CompletionResult.failed(FailureKind.MODEL_UNAVAILABLE, "empty answer")

        return CompletionResult.succeeded(text)

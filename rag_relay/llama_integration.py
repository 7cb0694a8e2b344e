"""
LlamaIndex integration for OpenAI-compatible chat and embedding endpoints.
"""

from typing import List, Optional

from llama_index.core.base.llms.types import ChatMessage, MessageRole
from llama_index.core.embeddings import BaseEmbedding
from llama_index.core.llms import LLM
from llama_index.embeddings.openai import OpenAIEmbedding
from llama_index.llms.openai_like import OpenAILike

from .config import RelayConfig


class LLMIntegration:
    """Integration class for the chat model and the embedding model."""

    def __init__(self, config: RelayConfig):
        """Initialize the integration.

        Args:
            config: Relay configuration
        """
        self.config = config
        self._llm: Optional[LLM] = None
        self._embedding_model: Optional[BaseEmbedding] = None

    def get_llm(self) -> LLM:
        """Get configured LLM instance.

        Retries are disabled; the relay decides whether to try again.
        """
        if self._llm is None:
            self._llm = OpenAILike(
                model=self.config.llm_model,
                api_base=self.config.llm_api_base,
                api_key=self.config.llm_api_key,
                is_chat_model=True,
                temperature=0.1,
                max_tokens=2048,
                timeout=self.config.completion_timeout,
                max_retries=0,
            )
        return self._llm

    def get_embedding_model(self) -> BaseEmbedding:
        """Get configured embedding model instance."""
        if self._embedding_model is None:
            self._embedding_model = OpenAIEmbedding(
                model=self.config.embedding_model,
                api_base=self.config.llm_api_base,
                api_key=self.config.llm_api_key,
                timeout=self.config.store_timeout,
                max_retries=0,
            )
        return self._embedding_model

    async def generate_chat(self, system_message: str, question: str) -> str:
        """Ask the chat model a question under a system message.

        Args:
            system_message: System prompt including retrieved context
            question: The user's question

        Returns:
            str: Generated answer, possibly empty

        Errors from the underlying client propagate unchanged so callers
        can tell rate limits from timeouts.
        """
        messages = [
            ChatMessage(role=MessageRole.SYSTEM, content=system_message),
            ChatMessage(role=MessageRole.USER, content=question),
        ]
        response = await self.get_llm().achat(messages)
        return response.message.content or ""

    async def generate_single_embedding(self, text: str) -> List[float]:
        """Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            List[float]: Embedding vector
        """
        embedding_model = self.get_embedding_model()
        return await embedding_model.aget_query_embedding(text)

"""
Wires the relay components together from a configuration.
"""

from .config import RelayConfig
from .completion_client import CompletionClient
from .llama_integration import LLMIntegration
from .prompt_assembler import PromptAssembler
from .relay import DiscordRelay
from .runtime import RelayDispatcher
from .vector_store import create_vector_store


class RelaySystem:
    """Main orchestrator for the Discord RAG relay."""

    def __init__(self, config: RelayConfig, sender):
        """Initialize the relay system.

        Args:
            config: Validated relay configuration
            sender: Delivers replies to Discord channels
        """
        self.config = config

        self.llm_integration = LLMIntegration(config)
        self.store = create_vector_store(config, self.llm_integration)
        self.completion_client = CompletionClient(self.llm_integration, timeout=config.completion_timeout)
        self.relay = DiscordRelay(
            config,
            store=self.store,
            completion_client=self.completion_client,
            sender=sender,
            assembler=PromptAssembler(max_chars=config.max_prompt_chars),
        )
        self.dispatcher = RelayDispatcher(self.relay, max_concurrency=config.max_concurrency)

    async def aclose(self) -> None:
        """Finish in-flight messages and release HTTP clients."""
        await self.dispatcher.close()
        await self.store.aclose()

    def get_system_status(self) -> str:
        """Get system status information.

        Returns:
            str: System status message
        """
        backend = self.config.vector_store_url or f"local ({self.config.vector_store_path})"
        status_parts = [
            "RAG relay status",
            f"- LLM model: {self.config.llm_model}",
            f"- Embedding model: {self.config.embedding_model}",
            f"- API base: {self.config.llm_api_base}",
            f"- Collection: {self.config.collection_name} via {backend}",
            f"- Retrieval: top {self.config.top_k}, min score {self.config.min_score}",
            f"- Prompt budget: {self.config.max_prompt_chars} chars",
            f"- Max concurrent pipelines: {self.config.max_concurrency}",
            f"- On store failure: {self.config.store_failure_policy}",
        ]
        return "\n".join(status_parts)

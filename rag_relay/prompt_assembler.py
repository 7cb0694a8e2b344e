"""
Builds the prompt sent to the language model.
"""

from typing import Iterable

from .data_models import AssembledPrompt, RetrievedPassage


class PromptAssembler:
    """Combines system prompt, retrieved passages and question within a size budget."""

    def __init__(self, max_chars: int = 30000, delimiter: str = "\n---\n"):
        self.max_chars = max_chars
        self.delimiter = delimiter

    def assemble(self, system_prompt: str, passages: Iterable[RetrievedPassage], question: str) -> AssembledPrompt:
        """Assemble a prompt, dropping the least similar passages until it fits.

        The system prompt and the question are always kept whole, so a prompt
        with no passages may still exceed ``max_chars``.

        Args:
            system_prompt: Instructions for the model
            passages: Retrieved passages in any order
            question: The user's question

        Returns:
            AssembledPrompt: The prompt with the passages that fit
        """
        ranked = sorted(passages, key=lambda p: p.similarity_score, reverse=True)
        total = len(ranked)

        prompt = self._build(system_prompt, ranked, question, 0)
        while ranked and len(prompt) > self.max_chars:
            ranked.pop()
            prompt = self._build(system_prompt, ranked, question, total - len(ranked))
        return prompt

    def _build(self, system_prompt, passages, question, dropped) -> AssembledPrompt:
        return AssembledPrompt(
            system_prompt=system_prompt,
            passages=tuple(passages),
            question=question,
            delimiter=self.delimiter,
            dropped=dropped,
        )

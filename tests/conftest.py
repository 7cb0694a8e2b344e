"""
Shared fixtures and fakes for the relay tests.
"""

import itertools

import pytest

from rag_relay.config import RelayConfig
from rag_relay.data_models import CompletionResult, InboundMessage, RetrievedPassage
from rag_relay.exceptions import DeliveryFailed, StoreUnavailable

BOT_ID = "1100000000000000001"


class FakeStore:
    """Returns canned passages or raises StoreUnavailable."""

    def __init__(self, passages=None, error=None):
        self.passages = passages or []
        self.error = error
        self.calls = []

    async def query(self, collection_name, question_text, top_k):
        self.calls.append((collection_name, question_text, top_k))
        if self.error:
            raise StoreUnavailable(self.error)
        return list(self.passages)

    async def aclose(self):
        pass


class FakeCompletion:
    """Returns queued results, repeating the last one."""

    def __init__(self, *results):
        self.results = list(results) or [CompletionResult.succeeded("An answer.")]
        self.prompts = []

    async def complete(self, prompt):
        self.prompts.append(prompt)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class FakeSender:
    """Records sends and edits like a Discord channel would."""

    def __init__(self, fail_send=False, fail_edit=False):
        self.fail_send = fail_send
        self.fail_edit = fail_edit
        self.messages = {}
        self.log = []
        self._ids = itertools.count(1)

    async def send(self, channel_id, content):
        if self.fail_send:
            raise DeliveryFailed("channel unavailable")
        message_id = next(self._ids)
        self.messages[message_id] = (channel_id, content)
        self.log.append(("send", channel_id, content))
        return message_id

    async def edit(self, channel_id, message_id, content):
        if self.fail_edit:
            raise DeliveryFailed("message gone")
        self.messages[message_id] = (channel_id, content)
        self.log.append(("edit", channel_id, content))

    def contents(self, channel_id=None):
        return [c for cid, c in self.messages.values() if channel_id is None or cid == channel_id]


@pytest.fixture
def relay_config():
    """Configuration with the placeholder disabled."""
    return RelayConfig(
        discord_token="discord-token-value",
        bot_id=BOT_ID,
        collection_name="rust-book",
        llm_api_key="sk-test-key",
        error_mesg="Sorry, something went wrong.",
        system_prompt="You are a Rust expert.",
        typing_placeholder="",
    )


@pytest.fixture
def make_message():
    def _make(text=f"<@{BOT_ID}> What is ownership in Rust?", channel_id=10, mentions_bot=True, **kwargs):
        return InboundMessage(
            channel_id=channel_id,
            author_id=42,
            raw_text=text,
            mentions_bot=mentions_bot,
            bot_id=BOT_ID,
            **kwargs,
        )
    return _make


@pytest.fixture
def rust_passages():
    return [
        RetrievedPassage(text="Each value in Rust has an owner.", similarity_score=0.91, source_id="a"),
        RetrievedPassage(text="When the owner goes out of scope, the value is dropped.", similarity_score=0.85, source_id="b"),
    ]

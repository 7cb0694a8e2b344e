"""
discord.py adapter: turns gateway events into relay messages and sends replies.
"""

import logging
from typing import Optional

import discord
from discord.ext import commands

from .config import RelayConfig
from .data_models import InboundMessage
from .exceptions import DeliveryFailed
from .relay_system import RelaySystem

logger = logging.getLogger(__name__)


def to_inbound_message(message: discord.Message, bot_id: str) -> InboundMessage:
    """Convert a discord.py message into the relay's message type.

    Messages outside a guild are direct messages; in a guild the bot only
    answers when its user ID is among the mentions.
    """
    return InboundMessage(
        channel_id=message.channel.id,
        author_id=message.author.id,
        raw_text=message.content or "",
        mentions_bot=any(str(user.id) == bot_id for user in message.mentions),
        is_direct=message.guild is None,
        author_is_bot=message.author.bot,
        message_id=message.id,
        bot_id=bot_id,
    )


class DiscordMessageSender:
    """Sends and edits channel messages through a discord.py client."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def _resolve_channel(self, channel_id: int):
        channel = self.client.get_channel(channel_id)
        if channel is None:
            channel = await self.client.fetch_channel(channel_id)
        return channel

    async def send(self, channel_id: int, content: str) -> int:
        """Send a message and return its ID.

        Raises:
            DeliveryFailed: If Discord rejects the request
        """
        try:
            channel = await self._resolve_channel(channel_id)
            sent = await channel.send(content)
        except discord.HTTPException as e:
            raise DeliveryFailed(f"send to {channel_id} failed: {e}") from e
        return sent.id

    async def edit(self, channel_id: int, message_id: int, content: str) -> None:
        """Replace the content of a message sent earlier.

        Raises:
            DeliveryFailed: If Discord rejects the request
        """
        try:
            channel = await self._resolve_channel(channel_id)
            await channel.get_partial_message(message_id).edit(content=content)
        except discord.HTTPException as e:
            raise DeliveryFailed(f"edit of {message_id} in {channel_id} failed: {e}") from e


class RelayBot(commands.Bot):
    """Discord bot that hands every message addressed to it to the relay."""

    def __init__(self, config: RelayConfig, system: Optional[RelaySystem] = None):
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(command_prefix="!", intents=intents)

        self.config = config
        self.system = system or RelaySystem(config, DiscordMessageSender(self))

    async def on_ready(self):
        logger.info("Logged in as %s", self.user)
        logger.info("The system prompt is %d lines", len(self.config.system_prompt.splitlines()))
        logger.info("%s", self.system.get_system_status())

    async def on_message(self, message: discord.Message):
        inbound = to_inbound_message(message, self.config.bot_id)
        if not inbound.triggers:
            if inbound.author_is_bot:
                logger.debug("ignored bot message")
            else:
                logger.debug("ignored guild message")
            return
        self.system.dispatcher.submit(inbound)

    async def close(self):
        await self.system.aclose()
        await super().close()

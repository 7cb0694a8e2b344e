import logging
import os
import sys

from dotenv import load_dotenv

from rag_relay.bot import RelayBot
from rag_relay.config import RelayConfig
from rag_relay.exceptions import ConfigError
from rag_relay.logging_setup import redact_secrets, setup_logging

logger = logging.getLogger("discord_bot")


def load_config() -> RelayConfig:
    """Load and validate settings; the process cannot start without them."""
    config = RelayConfig.from_env()
    config.validate()
    return config


def main():
    load_dotenv()
    setup_logging(os.getenv("log_level") or os.getenv("LOG_LEVEL") or "INFO")

    try:
        config = load_config()
    except ConfigError as e:
        logger.critical("Cannot start: %s", e)
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)
    redact_secrets(config.secrets)

    bot = RelayBot(config)
    # Logging is already configured above.
    bot.run(config.discord_token, log_handler=None)


if __name__ == "__main__":
    main()

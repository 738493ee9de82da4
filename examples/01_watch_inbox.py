"""Example: Backfill own Messenger messages and follow new ones as they arrive."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from messenger_sync import LocalKeyWallet, MessengerConfig, MessengerSyncEngine

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

WATCH_SECONDS = 60


async def main() -> None:
    """Print the inbox of the configured account, then watch for a minute."""

    private_key = os.getenv("PRIVATE_KEY")
    if not private_key:
        raise ValueError("PRIVATE_KEY not found in environment variables")

    config = MessengerConfig.from_env()
    wallet = LocalKeyWallet(config.rpc_url, private_key, request_timeout=config.request_timeout)

    async with MessengerSyncEngine(config, wallet) as engine:
        state = await engine.configure(wallet.address)
        if not state.connected:
            logging.error("Could not connect to %s", config.rpc_url)
            return

        for message in state.messages:
            logging.info(
                "[%s] %s -> %s: %s (%s wei)",
                message.timestamp.isoformat(),
                message.sender,
                message.receiver,
                message.text,
                message.deposit_in_wei,
            )

        seen = len(state.messages)
        logging.info("Watching for new messages for %s seconds...", WATCH_SECONDS)
        for _ in range(WATCH_SECONDS):
            await asyncio.sleep(1)
            messages = engine.messages
            for message in messages[seen:]:
                logging.info("New message from %s: %s", message.sender, message.text)
            seen = len(messages)


if __name__ == "__main__":
    asyncio.run(main())

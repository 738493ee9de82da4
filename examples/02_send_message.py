"""Example: Post a message with an ether deposit through the Messenger contract."""

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

TEXT = "Hello from messenger-sync"
TOKEN_IN_ETHER = "0.0001"


async def main() -> None:
    """Send one message and wait for it to settle."""

    private_key = os.getenv("PRIVATE_KEY")
    if not private_key:
        raise ValueError("PRIVATE_KEY not found in environment variables")
    receiver = os.getenv("MESSENGER_RECEIVER")
    if not receiver:
        raise ValueError("MESSENGER_RECEIVER not found in environment variables")

    config = MessengerConfig.from_env()
    wallet = LocalKeyWallet(config.rpc_url, private_key, request_timeout=config.request_timeout)

    async with MessengerSyncEngine(config, wallet) as engine:
        state = await engine.configure(wallet.address)
        if not state.connected:
            logging.error("Could not connect to %s", config.rpc_url)
            return

        response = await engine.send_message(
            text=TEXT, receiver=receiver, token_in_ether=TOKEN_IN_ETHER
        )
        if not response.success:
            logging.error("Send failed (%s): %s", response.error_type, response.error)
            return

        logging.info(
            "Message settled in block %s; tx=%s",
            response.block_number,
            response.transaction_hash,
        )


if __name__ == "__main__":
    asyncio.run(main())

"""Connection management: bind a wallet and identity to a node handle."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from web3 import AsyncWeb3
from web3.types import ChecksumAddress

from .base import WalletProvider
from .exceptions import ConnectionUnavailable
from .utils import same_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ConnectionHandle:
    """A provider/signer pairing valid for one identity.

    Handles are never mutated; a rebind discards the old handle and issues a
    new one with a higher ``generation``.
    """

    web3: AsyncWeb3
    account: ChecksumAddress
    identity: str
    generation: int
    endpoint: str = ""


class ConnectionManager:
    """Obtain a :class:`ConnectionHandle` from a wallet, or nothing."""

    def __init__(self) -> None:
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def next_generation(self) -> int:
        self._generation += 1
        return self._generation

    async def connect(
        self,
        wallet: WalletProvider | None,
        identity: str | None,
        *,
        generation: int | None = None,
    ) -> ConnectionHandle | None:
        """Return a handle for ``identity`` or ``None``.

        Never raises: a missing wallet, a rejected signer request or a network
        error is logged and reported as ``None``, which callers treat as a
        retryable state.
        """

        if generation is None:
            generation = self.next_generation()

        try:
            return await self._connect(wallet, identity, generation)
        except ConnectionUnavailable as exc:
            logger.warning("Connection unavailable: %s", exc.message)
        except Exception:
            logger.exception("Unexpected failure while connecting wallet")
        return None

    async def disconnect(self, handle: ConnectionHandle | None) -> None:
        """Release the provider session behind ``handle`` (best effort)."""

        if handle is None:
            return
        await self._close_provider(handle.web3, handle.endpoint)

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    async def _connect(
        self,
        wallet: WalletProvider | None,
        identity: str | None,
        generation: int,
    ) -> ConnectionHandle | None:
        if wallet is None:
            raise ConnectionUnavailable("Wallet provider doesn't exist")

        if not identity:
            logger.info("No identity selected; skipping connection")
            return None

        endpoint = wallet.endpoint
        web3 = wallet.build_web3()
        try:
            return await self._open(web3, wallet, identity, generation, endpoint)
        except Exception:
            await self._close_provider(web3, endpoint)
            raise

    async def _open(
        self,
        web3: AsyncWeb3,
        wallet: WalletProvider,
        identity: str,
        generation: int,
        endpoint: str,
    ) -> ConnectionHandle:
        try:
            connected = await web3.is_connected()
        except Exception as exc:
            raise ConnectionUnavailable(
                "Unable to reach RPC endpoint", endpoint=endpoint, details={"error": str(exc)}
            ) from exc
        if not connected:
            raise ConnectionUnavailable("Unable to reach RPC endpoint", endpoint=endpoint)

        try:
            signer = await wallet.request_signer(web3)
        except ConnectionUnavailable:
            raise
        except Exception as exc:
            raise ConnectionUnavailable(
                "Wallet refused to provide a signer",
                endpoint=endpoint,
                details={"error": str(exc)},
            ) from exc

        if not same_address(signer, identity):
            raise ConnectionUnavailable(
                "Signer does not match the selected identity",
                endpoint=endpoint,
                details={"signer": signer, "identity": identity},
            )

        web3.eth.default_account = signer
        logger.info("Connected %s at %s (generation %s)", signer, endpoint, generation)
        return ConnectionHandle(
            web3=web3,
            account=signer,
            identity=identity,
            generation=generation,
            endpoint=endpoint,
        )

    async def _close_provider(self, web3: AsyncWeb3, endpoint: str) -> None:
        disconnect = getattr(web3.provider, "disconnect", None)
        if disconnect is None:
            return
        try:
            await disconnect()
        except Exception as exc:
            logger.warning("Failed to close provider session at %s: %s", endpoint, exc)

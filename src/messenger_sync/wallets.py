"""Concrete wallet providers."""

from __future__ import annotations

import logging
from typing import cast

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.middleware import SignAndSendRawMiddlewareBuilder
from web3.types import ChecksumAddress

from .base import WalletProvider
from .config import DEFAULT_REQUEST_TIMEOUT
from .exceptions import ConnectionUnavailable, ValidationError

logger = logging.getLogger(__name__)


class LocalKeyWallet(WalletProvider):
    """Sign locally with a private key and send raw transactions over HTTP."""

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        *,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        try:
            account = cast(LocalAccount, Account.from_key(private_key))  # type: ignore[arg-type]
        except Exception as exc:
            raise ValidationError(
                "Failed to derive signer account from provided private key",
                field="private_key",
                details={"error": str(exc)},
            ) from exc

        self._rpc_url = rpc_url
        self._account = account
        self._request_timeout = request_timeout

    @property
    def endpoint(self) -> str:
        return self._rpc_url

    @property
    def address(self) -> ChecksumAddress:
        return self._account.address

    def build_web3(self) -> AsyncWeb3:
        provider = AsyncHTTPProvider(
            self._rpc_url, request_kwargs={"timeout": self._request_timeout}
        )
        return AsyncWeb3(provider)

    async def request_signer(self, web3: AsyncWeb3) -> ChecksumAddress:
        web3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self._account))  # type: ignore[arg-type]
        return self._account.address


class NodeAccountWallet(WalletProvider):
    """Use an account the node manages and signs for (dev chains, unlocked nodes)."""

    def __init__(
        self,
        rpc_url: str,
        *,
        account_index: int = 0,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self._rpc_url = rpc_url
        self._account_index = account_index
        self._request_timeout = request_timeout

    @property
    def endpoint(self) -> str:
        return self._rpc_url

    def build_web3(self) -> AsyncWeb3:
        provider = AsyncHTTPProvider(
            self._rpc_url, request_kwargs={"timeout": self._request_timeout}
        )
        return AsyncWeb3(provider)

    async def request_signer(self, web3: AsyncWeb3) -> ChecksumAddress:
        accounts = await web3.eth.accounts
        if len(accounts) <= self._account_index:
            raise ConnectionUnavailable(
                "Node exposes no account at the requested index",
                endpoint=self._rpc_url,
                details={"account_index": self._account_index, "available": len(accounts)},
            )
        address = accounts[self._account_index]
        logger.debug("Using node-managed account %s", address)
        return address

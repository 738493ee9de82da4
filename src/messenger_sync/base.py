"""Wallet provider interface consumed by the connection manager."""

from abc import ABC, abstractmethod

from web3 import AsyncWeb3
from web3.types import ChecksumAddress


class WalletProvider(ABC):
    """External wallet capability: a node connection plus a signing account."""

    @property
    @abstractmethod
    def endpoint(self) -> str:
        pass

    @abstractmethod
    def build_web3(self) -> AsyncWeb3:
        pass

    @abstractmethod
    async def request_signer(self, web3: AsyncWeb3) -> ChecksumAddress:
        """Make ``web3`` able to sign for the wallet's account and return its address."""
        pass

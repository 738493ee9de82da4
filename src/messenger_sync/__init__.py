"""Messenger sync - client-side view of an on-chain Messenger contract.

This library keeps an ordered, in-memory list of Messenger records addressed
to the current wallet, follows the contract's ``NewMessage`` events and posts
new messages with an ether deposit.
"""

from .base import WalletProvider
from .config import MessengerConfig
from .connections import ConnectionHandle, ConnectionManager
from .contract import MessengerContract, PendingTransaction
from .engine import MessengerSyncEngine
from .exceptions import (
    AmountFormatError,
    ConnectionUnavailable,
    FetchFailure,
    MessengerSyncError,
    SubmissionFailure,
    SubscriptionError,
    ValidationError,
)
from .subscription import SubscriptionState
from .types import (
    Address,
    EngineState,
    Message,
    RawMessage,
    SendMessageRequest,
    SendResponse,
    Wei,
)
from .utils import ether_to_wei, normalise_timestamp, same_address
from .wallets import LocalKeyWallet, NodeAccountWallet

__version__ = "0.1.0"

__all__ = [
    # Engine and components
    "MessengerSyncEngine",
    "MessengerConfig",
    "ConnectionHandle",
    "ConnectionManager",
    "MessengerContract",
    "PendingTransaction",
    "SubscriptionState",
    # Wallets
    "WalletProvider",
    "LocalKeyWallet",
    "NodeAccountWallet",
    # Types
    "Message",
    "RawMessage",
    "EngineState",
    "SendMessageRequest",
    "SendResponse",
    "Address",
    "Wei",
    # Exceptions
    "MessengerSyncError",
    "ConnectionUnavailable",
    "FetchFailure",
    "AmountFormatError",
    "SubmissionFailure",
    "SubscriptionError",
    "ValidationError",
    # Utility functions
    "ether_to_wei",
    "normalise_timestamp",
    "same_address",
]

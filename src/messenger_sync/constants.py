"""Constants for the Messenger contract and its native denomination."""

from enum import Enum

# Deployed Messenger record store
MESSENGER_CONTRACT_ADDRESS = "0x1A39EAAfd55D97b7e499ab5f7f8055a40DcF4183"

# Upper bound on gas units for a single post() call
GAS_LIMIT = 300_000

# Ether has 18 decimals; amounts are entered in ether and submitted in wei
ETHER_DECIMALS = 18
DISPLAY_UNIT = "ether"

MILLISECONDS_PER_SECOND = 1000


class ContractFunction(str, Enum):
    """Messenger contract functions used by the engine."""

    GET_OWN_MESSAGES = "getOwnMessages"
    POST = "post"


class ContractEvent(str, Enum):
    """Messenger contract events observed by the engine."""

    NEW_MESSAGE = "NewMessage"

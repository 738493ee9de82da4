"""Interface description of the Messenger contract."""

_MESSAGE_COMPONENTS = [
    {"internalType": "address payable", "name": "sender", "type": "address"},
    {"internalType": "address payable", "name": "receiver", "type": "address"},
    {"internalType": "uint256", "name": "depositInWei", "type": "uint256"},
    {"internalType": "uint256", "name": "timestamp", "type": "uint256"},
    {"internalType": "string", "name": "text", "type": "string"},
    {"internalType": "bool", "name": "isPending", "type": "bool"},
]

Messenger_abi = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "internalType": "address", "name": "sender", "type": "address"},
            {"indexed": False, "internalType": "address", "name": "receiver", "type": "address"},
            {
                "indexed": False,
                "internalType": "uint256",
                "name": "depositInWei",
                "type": "uint256",
            },
            {"indexed": False, "internalType": "uint256", "name": "timestamp", "type": "uint256"},
            {"indexed": False, "internalType": "string", "name": "text", "type": "string"},
            {"indexed": False, "internalType": "bool", "name": "isPending", "type": "bool"},
        ],
        "name": "NewMessage",
        "type": "event",
    },
    {
        "inputs": [],
        "name": "getOwnMessages",
        "outputs": [
            {
                "components": _MESSAGE_COMPONENTS,
                "internalType": "struct Messenger.Message[]",
                "name": "",
                "type": "tuple[]",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "string", "name": "_text", "type": "string"},
            {"internalType": "address payable", "name": "_receiver", "type": "address"},
        ],
        "name": "post",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]

__all__ = ["Messenger_abi"]

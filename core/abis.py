"""
合約 ABI（只保留本服務會用到的函式）
"""

# PlayGame.matches() 回傳的 status 列舉
ONCHAIN_MATCH_STATUS = ["NONE", "CREATED", "STAKED", "SETTLED", "REFUNDED"]

PLAYGAME_ABI = [
    {
        "inputs": [
            {"internalType": "bytes32", "name": "matchId", "type": "bytes32"},
            {"internalType": "address", "name": "p1", "type": "address"},
            {"internalType": "address", "name": "p2", "type": "address"},
            {"internalType": "uint256", "name": "stake", "type": "uint256"},
        ],
        "name": "createMatch",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "bytes32", "name": "matchId", "type": "bytes32"},
            {"internalType": "address", "name": "winner", "type": "address"},
        ],
        "name": "commitResult",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "bytes32", "name": "", "type": "bytes32"}],
        "name": "matches",
        "outputs": [
            {"internalType": "address", "name": "p1", "type": "address"},
            {"internalType": "address", "name": "p2", "type": "address"},
            {"internalType": "uint256", "name": "stake", "type": "uint256"},
            {"internalType": "uint256", "name": "startTime", "type": "uint256"},
            {"internalType": "uint8", "name": "status", "type": "uint8"},
            {"internalType": "address", "name": "winner", "type": "address"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

ERC20_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "owner", "type": "address"},
            {"internalType": "address", "name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

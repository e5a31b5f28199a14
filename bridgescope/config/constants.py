from bridgescope.utils.types import Chain, Direction, EventKind, TransferStatus

BRIDGE_CONTRACTS = {
    "BASE": {
        "BRIDGE": "0x3eff766C76a1be2Ce1aCF2B69c78bCae257D5188",
        "VALIDATOR": "0xAF24c1c24Ff3BF1e6D882518120fC25442d6794B",
        "SOL_ERC20": "0x311935Cd80B76769bF2ecC9D8Ab7635b2139cf82",
    },
    "SOLANA": {
        "BRIDGE_PROGRAM": "HNCne2FkVaNghhjKXapxJzPaBvAKDG1Ge3gqhZyfVWLM",
        "RELAYER_PROGRAM": "g1et5VenhfJHJwsdJsDbxWZuotD5H4iELNG61kS4fb9",
    },
}

# relayer account → dApp id
RELAYER_ADDRESSES = {
    "AFs1LCbodhvwpgX3u3URLsud6R1XMSaMiQ5LtXw4GKYT": "zora",
    "B7g2YCbodhvwpgX3u3URLsud6R1XMSaMiQ5LtXw4GKBC": "aerodrome",
}

# substring found in a wallet label → dApp id
WALLET_LABEL_MARKERS = {
    "zora": "zora",
}

# (emitting chain, event kind) → direction
DIRECTION_TABLE = {
    (Chain.BASE, EventKind.INITIATED): Direction.CONTRACT_TO_LEDGER,
    (Chain.BASE, EventKind.FINALIZED): Direction.LEDGER_TO_CONTRACT,
    (Chain.SOLANA, EventKind.INITIATED): Direction.LEDGER_TO_CONTRACT,
    (Chain.SOLANA, EventKind.FINALIZED): Direction.CONTRACT_TO_LEDGER,
}

STATUS_TABLE = {
    EventKind.INITIATED: TransferStatus.PENDING,
    EventKind.FINALIZED: TransferStatus.COMPLETED,
}

DEFAULT_EVM_DECIMALS = 18
DEFAULT_SPL_DECIMALS = 9

DAPP_REGISTRY = [
    {
        "id": "aerodrome",
        "name": "Aerodrome",
        "category": "DEX",
        "contracts": [
            {"chain": "BASE", "address": "0x420DD381b31aEf6683db6B902084cB0FFECe40Da", "role": "router"},
            {"chain": "BASE", "address": "0x827922686190790b37229fd06084350E74485b72", "role": "factory"},
            {"chain": "BASE", "address": "0x940181a94A35A4569E4529A3CDfB74e38FD98631", "role": "token"},
        ],
    },
    {
        "id": "uniswap",
        "name": "Uniswap",
        "category": "DEX",
        "contracts": [
            {"chain": "BASE", "address": "0x198EF79F1F515F02dFE9e3115eD9fC07183f02fC", "role": "universal_router"},
            {"chain": "BASE", "address": "0x33128a8fC17869897dcE68Ed026d694621f6FDfD", "role": "factory"},
        ],
    },
    {
        "id": "moonwell",
        "name": "Moonwell",
        "category": "LENDING",
        "contracts": [
            {"chain": "BASE", "address": "0xfBb21d0380beE3312B33c4353c8936a0F13EF26C", "role": "comptroller"},
            {"chain": "BASE", "address": "0xA88594D404727625A9437C3f886C7643872296AE", "role": "token"},
        ],
    },
    {
        "id": "zora",
        "name": "Zora",
        "category": "NFT_MARKETPLACE",
        "contracts": [
            {"chain": "BASE", "address": "0x777777C338d93e2C7adf08D102d45CA7CC4Ed021", "role": "protocol"},
        ],
    },
    {
        "id": "virtuals",
        "name": "Virtuals Protocol",
        "category": "AI_AGENTS",
        "contracts": [
            {"chain": "BASE", "address": "0x0b3e328455c4059eeb9e3f84b5543f74e24e7e1b", "role": "token"},
        ],
    },
    {
        "id": "flaunch",
        "name": "Flaunch",
        "category": "LAUNCHPAD",
        "contracts": [
            {"chain": "BASE", "address": "0x4dc442403e8c758425b93c59dc737da522f32640", "role": "fair_launch"},
            {"chain": "BASE", "address": "0x23321f11a6d44fd1ab790044fdfde5758c902fdc", "role": "position_manager"},
        ],
    },
    {
        "id": "friendtech",
        "name": "Friend.tech",
        "category": "SOCIAL",
        "contracts": [
            {"chain": "BASE", "address": "0xcf205808ed36593aa40a44f10c7f7c2f67d4a4d4", "role": "shares"},
            {"chain": "BASE", "address": "0x0bd4887f7d41b35cd75dff9ffee2856106f86670", "role": "token"},
        ],
    },
    {
        "id": "morpho",
        "name": "Morpho",
        "category": "LENDING",
        "contracts": [
            {"chain": "BASE", "address": "0xBBBBBbbBBb9cC5e90e3b3Af64bdAF62C37EEFFCb", "role": "morpho_blue"},
        ],
    },
]

# lowercased token address → CoinGecko id + symbol
KNOWN_TOKENS = {
    "0x4200000000000000000000000000000000000006": {"coingecko_id": "weth", "symbol": "WETH"},
    "0x50c5725949a6f0c72e6c4a641f24049a917db0cb": {"coingecko_id": "dai", "symbol": "DAI"},
    "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913": {"coingecko_id": "usd-coin", "symbol": "USDC"},
    "0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca": {"coingecko_id": "bridged-usd-coin-base", "symbol": "USDbC"},
    "0x940181a94a35a4569e4529a3cdfb74e38fd98631": {"coingecko_id": "aerodrome-finance", "symbol": "AERO"},
    "0xa88594d404727625a9437c3f886c7643872296ae": {"coingecko_id": "moonwell", "symbol": "WELL"},
    "0x0b3e328455c4059eeb9e3f84b5543f74e24e7e1b": {"coingecko_id": "virtuals-protocol", "symbol": "VIRTUAL"},
}

ERC20_META_ABI = [
    {"name": "name", "outputs": [{"type": "string"}],
     "inputs": [], "stateMutability": "view", "type": "function"},
    {"name": "symbol", "outputs": [{"type": "string"}],
     "inputs": [], "stateMutability": "view", "type": "function"},
    {"name": "decimals", "outputs": [{"type": "uint8"}],
     "inputs": [], "stateMutability": "view", "type": "function"},
]

from typing import Dict, Final, Mapping

# Contracts whose on-chain metadata is wrong or unreadable (bytes32 symbols,
# proxies initialized after deployment, Wormhole beacon proxies). This is a
# patch table keyed by lowercase address, not a token directory.
SYMBOL_RECORDS: Final[Mapping[str, Dict[str, object]]] = {
    # Mainnet
    "0x9f8f72aa9304c8b593d555f12ef6589cc3a579a2": {"symbol": "MKR", "decimals": 18, "name": "Maker"},
    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": {"symbol": "USDC", "decimals": 6, "name": "USD Coin"},
    "0x3ef389f264e07fff3106a3926f2a166d1393086f": {"symbol": "SAO", "decimals": 9, "name": "Wormhole: Sator"},

    # BSC
    "0xfa54ff1a158b5189ebba6ae130ced6bbd3aea76e": {"symbol": "SOL", "decimals": 9, "name": "Wormhole: SOL Token"},
    "0x91ca579b0d47e5cfd5d0862c21d5659d39c8ecf0": {"symbol": "USDC", "decimals": 6, "name": "Wormhole: USDCso Token"},
    "0xbc7a566b85ef73f935e640a06b5a8b031cd975df": {"symbol": "BLOCK", "decimals": 6, "name": "Wormhole: Blockasset"},
    "0x49d5cc521f75e13fa8eb4e89e9d381352c897c96": {"symbol": "USDT", "decimals": 6, "name": "Wormhole: USDTso Token"},
    "0x43274da7818fb8f1d1121d93245ed7c8422ebaf0": {"symbol": "SCT", "decimals": 9, "name": "Wormhole: SolClout"},
    "0x13b6a55662f6591f8b8408af1c73b017e32eedb8": {"symbol": "RAY", "decimals": 9, "name": "Wormhole: RAY Token"},
}

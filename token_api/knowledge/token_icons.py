from typing import Final, FrozenSet

# Token symbols with a web3icons entry (token set, mono variant).
# The icon id is the symbol itself.
WEB3ICON_TOKENS: Final[FrozenSet[str]] = frozenset({
    "1INCH", "AAVE", "ADA", "APE", "ARB", "ATOM", "AVAX", "AXS", "BAL", "BAT",
    "BNB", "BONK", "BTC", "BUSD", "CAKE", "COMP", "CRV", "CVX", "DAI", "DOGE",
    "DOT", "DYDX", "ENA", "ENS", "ETH", "FET", "FRAX", "FTM", "GMX", "GNO",
    "GRT", "JUP", "LDO", "LINK", "LRC", "LTC", "MANA", "MATIC", "MKR", "NEAR",
    "OP", "PAXG", "PENDLE", "PEPE", "POL", "RAY", "RNDR", "RPL", "SAND", "SHIB",
    "SNX", "SOL", "STETH", "SUSHI", "TON", "TRX", "TUSD", "UNI", "USDC", "USDE",
    "USDT", "WBTC", "WIF", "XRP", "YFI", "ZRX",
})

"""
Coin to exchange-pair mapping.

CoinGecko ids (and bare tickers) are translated to Binance spot pairs.
Anything not listed falls back to TICKER + "USDT".
"""

QUOTE_ASSET = "USDT"

# CoinGecko id -> Binance pair (partial list - extend as needed)
COIN_SYMBOL_MAP = {
    "bitcoin": "BTCUSDT",
    "ethereum": "ETHUSDT",
    "binancecoin": "BNBUSDT",
    "solana": "SOLUSDT",
    "ripple": "XRPUSDT",
    "cardano": "ADAUSDT",
    "dogecoin": "DOGEUSDT",
    "litecoin": "LTCUSDT",
    "matic-network": "MATICUSDT",
    "polygon-ecosystem-token": "POLUSDT",
    "polkadot": "DOTUSDT",
    "tron": "TRXUSDT",
    "avalanche-2": "AVAXUSDT",
    "chainlink": "LINKUSDT",
    "shiba-inu": "SHIBUSDT",
    "the-open-network": "TONUSDT",
    "uniswap": "UNIUSDT",
    "stellar": "XLMUSDT",
    "cosmos": "ATOMUSDT",
    "near": "NEARUSDT",
    "aptos": "APTUSDT",
    "arbitrum": "ARBUSDT",
    "optimism": "OPUSDT",
    "internet-computer": "ICPUSDT",
    "filecoin": "FILUSDT",
    "ethereum-classic": "ETCUSDT",
    "bitcoin-cash": "BCHUSDT",
    "pepe": "PEPEUSDT",
    "sui": "SUIUSDT",
}


def to_exchange_symbol(coin: str) -> str:
    """
    Convert a coin id or ticker to an exchange pair.

    "bitcoin" -> "BTCUSDT", "eth" -> "ETHUSDT", "SOLUSDT" -> "SOLUSDT"
    """
    key = coin.strip().lower()
    if key in COIN_SYMBOL_MAP:
        return COIN_SYMBOL_MAP[key]

    ticker = coin.strip().upper()
    if ticker.endswith(QUOTE_ASSET) and len(ticker) > len(QUOTE_ASSET):
        return ticker

    return f"{ticker}{QUOTE_ASSET}"


def is_mapped(coin: str) -> bool:
    """Whether the coin has an explicit entry (no fallback used)."""
    return coin.strip().lower() in COIN_SYMBOL_MAP

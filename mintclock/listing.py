"""
Normalization of the non-temporal listing fields: chain, public price, supply.
"""

import regex as re

CHAIN_ALIASES = {
    "eth": "ethereum",
    "btc": "bitcoin",
    "sol": "solana",
    "hyperliquid": "hyperliquidx",
    "abstract chain": "abstract",
}

CHAIN_SYMBOLS = {
    "solana": "◎",
    "ethereum": "Ξ",
    "bitcoin": "₿",
    "hyperliquidx": "HYP",
    "base": "BASE",
    "blast": "BLAST",
    "arbitrum": "ARB",
    "polygon": "MATIC",
    "sei": "SEI",
    "sui": "SUI",
    "avalanche": "AVAX",
    "monad": "MON",
    "abstract": "ABS",
}

UNKNOWN_CHAIN = "unknown"

TBA_PRICES = {"tba", "n/a", "na"}
FREE_PRICES = {"free", "0", "0.0"}

RE_CURRENCY_SYMBOL = re.compile(r"[◎Ξ₿]")
RE_LABEL_PREFIX = re.compile(r"^[^:]*:\s*")
RE_NON_DIGITS = re.compile(r"\D")
RE_SPACES = re.compile(r"\s+")


def normalize_text(value):
    if value is None:
        return ""
    return RE_SPACES.sub(" ", str(value)).strip()


def normalize_chain(chain):
    chain = normalize_text(chain).lower()
    if not chain:
        return UNKNOWN_CHAIN
    return CHAIN_ALIASES.get(chain, chain)


def chain_symbol(chain):
    chain = normalize_chain(chain)
    if chain == UNKNOWN_CHAIN:
        return ""
    return CHAIN_SYMBOLS.get(chain, chain.upper())


def format_price(price, chain):
    """Render a scraped price as "<amount> <symbol>", e.g. "0.05 ◎" or "TBA Ξ"."""
    symbol = chain_symbol(chain)
    amount = RE_LABEL_PREFIX.sub("", normalize_text(price)).strip()
    lower = amount.lower()

    if not amount or lower in TBA_PRICES:
        return "TBA {}".format(symbol).strip()
    if lower in FREE_PRICES:
        return "0 {}".format(symbol).strip()
    if RE_CURRENCY_SYMBOL.search(amount):
        return amount
    return "{} {}".format(amount, symbol).strip()


def parse_supply(supply):
    if supply is None:
        return None
    if isinstance(supply, int) and not isinstance(supply, bool):
        return supply
    digits = RE_NON_DIGITS.sub("", str(supply))
    return int(digits) if digits else None

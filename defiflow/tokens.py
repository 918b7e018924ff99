from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import InvalidAmountError

DEVNET_MINTS: dict[str, str] = {
    "WSOL": "So11111111111111111111111111111111111111112",
    "USDC": "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU",
    "USDT": "BRjpCHtyQLNCo8gqRUr8jtdAj5AjPYQaoqbvcZiHok1k",
}

# Mints that only exist on mainnet; a devnet swap must never reference them.
MAINNET_ONLY_MINTS: frozenset[str] = frozenset(
    {
        "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    }
)


@dataclass(slots=True, frozen=True)
class Token:
    address: str
    symbol: str
    name: str
    decimals: int
    tags: tuple[str, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "tags": list(self.tags),
        }


DEVNET_TOKENS: tuple[Token, ...] = (
    Token(DEVNET_MINTS["WSOL"], "SOL", "Wrapped SOL", 9, ("wrapped-sol", "devnet")),
    Token(DEVNET_MINTS["USDC"], "USDC", "USD Coin (Devnet)", 6, ("stablecoin", "devnet")),
    Token(DEVNET_MINTS["USDT"], "USDT", "Tether USD (Devnet)", 6, ("stablecoin", "devnet")),
    Token("mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So", "mSOL", "Marinade staked SOL", 9, ("devnet",)),
)

_UNKNOWN_DECIMALS = 9


def get_token_by_address(address: str) -> Token | None:
    for token in DEVNET_TOKENS:
        if token.address == address:
            return token
    return None


def get_token_by_symbol(symbol: str) -> Token | None:
    wanted = symbol.strip().lower()
    for token in DEVNET_TOKENS:
        if token.symbol.lower() == wanted:
            return token
    return None


def resolve_mint(symbol_or_mint: str) -> str:
    """Map a symbol such as ``SOL`` to its devnet mint; anything else is taken as a mint."""
    value = symbol_or_mint.strip()
    token = get_token_by_symbol(value)
    if token is not None:
        return token.address
    return value


def decimals_for(mint: str) -> int:
    token = get_token_by_address(mint)
    return token.decimals if token is not None else _UNKNOWN_DECIMALS


def to_base_units(amount: Any, decimals: int) -> int:
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(f"Amount is not a number: {amount!r}") from exc
    if not value.is_finite():
        raise InvalidAmountError(f"Amount is not a number: {amount!r}")
    return int(value.scaleb(decimals))


def is_devnet_safe(input_mint: str, output_mint: str) -> bool:
    return input_mint not in MAINNET_ONLY_MINTS and output_mint not in MAINNET_ONLY_MINTS

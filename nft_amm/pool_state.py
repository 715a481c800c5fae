"""
NFT liquidity pool state.

Reserves are 18-decimal fixed point integers. Every NFT held by the pool
backs exactly ONE_UNIT of fractional reserve, so
fractional_reserve == nfts_in_pool * ONE_UNIT at all times.
"""
import math
from decimal import Decimal
from typing import Optional

from .crypto import ZERO_HASH

# Fractional units per whole NFT (18 decimals)
ONE_UNIT = 10 ** 18


class PoolState:
    """
    Represents the pool record: base reserve, fractional reserve, LP supply
    and the allow-list root fixed at pool creation.

    All proportional math truncates, so the caller's entitlement is always
    rounded down in favour of the remaining LP holders.
    """

    def __init__(self, data: dict = None):
        """
        Initialize pool state.

        Args:
            data: Dict with reserves, LP supply and optional merkle_root
        """
        if data is None:
            data = {
                'base_reserve': 0,
                'fractional_reserve': 0,
                'lp_token_supply': 0,
                'merkle_root': None,
            }

        # Integers round-trip through storage as strings (values exceed 64 bits)
        self.base_reserve = int(data['base_reserve'])
        self.fractional_reserve = int(data['fractional_reserve'])
        self.lp_token_supply = int(data['lp_token_supply'])
        root = data.get('merkle_root')
        self.merkle_root: Optional[bytes] = bytes(root) if root else None
        self._validate()

    def to_dict(self) -> dict:
        """
        Convert to dict for storage.
        """
        return {
            'base_reserve': str(self.base_reserve),
            'fractional_reserve': str(self.fractional_reserve),
            'lp_token_supply': str(self.lp_token_supply),
            'merkle_root': self.merkle_root,
        }

    @property
    def is_open(self) -> bool:
        """True if the pool accepts any token id."""
        return self.merkle_root is None or self.merkle_root == ZERO_HASH

    @property
    def nft_count(self) -> int:
        """Number of whole NFTs backing the fractional reserve."""
        return self.fractional_reserve // ONE_UNIT

    @property
    def current_price(self) -> Decimal:
        """
        Spot price of one whole NFT in base tokens.

        Price = base_reserve / fractional_reserve

        Returns:
            Decimal price, or 0 for an empty pool
        """
        if self.fractional_reserve == 0:
            return Decimal(0)
        return Decimal(self.base_reserve * ONE_UNIT // self.fractional_reserve) / Decimal(ONE_UNIT)

    def get_remove_amounts(self, lp_token_amount: int) -> tuple[int, int]:
        """
        Proportional share of both reserves for burning LP tokens.

        base_out = floor(lp * base_reserve / lp_supply)
        fractional_out = floor(lp * fractional_reserve / lp_supply)

        Raises:
            ZeroDivisionError: If there is no LP supply
        """
        if lp_token_amount < 0:
            raise ValueError("LP token amount cannot be negative")
        if self.lp_token_supply == 0:
            raise ZeroDivisionError("Pool has no LP supply")

        base_out = (lp_token_amount * self.base_reserve) // self.lp_token_supply
        fractional_out = (lp_token_amount * self.fractional_reserve) // self.lp_token_supply
        return base_out, fractional_out

    def get_add_lp_amount(self, base_token_amount: int, fractional_token_amount: int) -> int:
        """
        LP tokens minted for a deposit.

        First deposit: geometric mean sqrt(base * fractional).
        Later deposits: the smaller of the two proportional shares, so the
        depositor never dilutes existing holders.
        """
        if self.lp_token_supply == 0:
            return math.isqrt(base_token_amount * fractional_token_amount)

        lp_from_base = (base_token_amount * self.lp_token_supply) // self.base_reserve
        lp_from_fractional = (fractional_token_amount * self.lp_token_supply) // self.fractional_reserve
        return min(lp_from_base, lp_from_fractional)

    def apply_remove(self, lp_token_amount: int, base_out: int, fractional_out: int):
        """Decrease supply and both reserves together."""
        if min(lp_token_amount, base_out, fractional_out) < 0:
            raise ValueError("Removal amounts cannot be negative")
        if (lp_token_amount > self.lp_token_supply
                or base_out > self.base_reserve
                or fractional_out > self.fractional_reserve):
            raise ValueError(
                f"Removal ({lp_token_amount}, {base_out}, {fractional_out}) exceeds pool state {self!r}"
            )
        self._replace(
            self.base_reserve - base_out,
            self.fractional_reserve - fractional_out,
            self.lp_token_supply - lp_token_amount,
        )

    def apply_add(self, lp_token_amount: int, base_in: int, fractional_in: int):
        """Increase supply and both reserves together."""
        if lp_token_amount < 0 or base_in < 0 or fractional_in < 0:
            raise ValueError("Deposit amounts cannot be negative")
        self._replace(
            self.base_reserve + base_in,
            self.fractional_reserve + fractional_in,
            self.lp_token_supply + lp_token_amount,
        )

    def _replace(self, base_reserve: int, fractional_reserve: int, lp_token_supply: int):
        """Validate the new values as a whole, then swap all three in."""
        updated = PoolState({
            'base_reserve': base_reserve,
            'fractional_reserve': fractional_reserve,
            'lp_token_supply': lp_token_supply,
            'merkle_root': self.merkle_root,
        })
        self.base_reserve = updated.base_reserve
        self.fractional_reserve = updated.fractional_reserve
        self.lp_token_supply = updated.lp_token_supply

    def copy(self) -> 'PoolState':
        return PoolState(self.to_dict())

    def __eq__(self, other) -> bool:
        if not isinstance(other, PoolState):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"PoolState("
            f"base_reserve={self.base_reserve}, "
            f"fractional_reserve={self.fractional_reserve}, "
            f"lp_supply={self.lp_token_supply}, "
            f"nfts={self.nft_count}, "
            f"open={self.is_open})"
        )

    def _validate(self):
        """Ensure state consistency."""
        if self.base_reserve < 0 or self.fractional_reserve < 0 or self.lp_token_supply < 0:
            raise ValueError("Reserves and LP supply cannot be negative")

        if self.fractional_reserve % ONE_UNIT != 0:
            raise ValueError(
                f"Fractional reserve {self.fractional_reserve} is not a whole number of NFTs"
            )

        if self.merkle_root is not None and len(self.merkle_root) != 32:
            raise ValueError("Merkle root must be 32 bytes")

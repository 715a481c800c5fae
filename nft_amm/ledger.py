"""
Reserve ledger: the single writer of a pool's record.
"""
import logging
from typing import Optional

from .errors import DivisionByZero
from .pool_state import PoolState
from .state import StateStore

logger = logging.getLogger(__name__)

POOL_STATE_PREFIX = b"POOL:"


def pool_state_key(pool_address: bytes) -> bytes:
    return POOL_STATE_PREFIX + pool_address


class ReserveLedger:
    """
    Reads and mutates the PoolState of one pool inside a state store.

    Bound to whatever store the caller hands in; pool operations bind it to
    their working snapshot so that commit() only becomes visible if the
    whole operation succeeds.
    """

    def __init__(self, store: StateStore, pool_address: bytes):
        self.store = store
        self.pool_address = pool_address
        self.key = pool_state_key(pool_address)

    def exists(self) -> bool:
        return self.store.get(self.key) is not None

    def initialize(self, merkle_root: Optional[bytes] = None) -> PoolState:
        """Create an empty pool record with a fixed allow-list root."""
        if self.exists():
            raise ValueError(f"Pool {self.pool_address.hex()} already initialized")
        state = PoolState({
            'base_reserve': 0,
            'fractional_reserve': 0,
            'lp_token_supply': 0,
            'merkle_root': merkle_root,
        })
        self._store(state)
        logger.info(f"Initialized pool {self.pool_address.hex()} (open={state.is_open})")
        return state

    def load(self) -> PoolState:
        data = self.store.get_obj(self.key)
        if data is None:
            raise KeyError(f"Pool {self.pool_address.hex()} not initialized")
        return PoolState(data)

    def quote(self, lp_token_amount: int) -> tuple[int, int]:
        """
        Base and fractional entitlement for burning lp_token_amount.

        Raises:
            DivisionByZero: If the pool has no outstanding LP supply
        """
        state = self.load()
        try:
            return state.get_remove_amounts(lp_token_amount)
        except ZeroDivisionError:
            raise DivisionByZero(f"Pool {self.pool_address.hex()} has no LP supply to redeem against")

    def commit(self, lp_token_amount: int, base_out: int, fractional_out: int) -> PoolState:
        """Burn supply and debit both reserves in one write."""
        state = self.load()
        state.apply_remove(lp_token_amount, base_out, fractional_out)
        self._store(state)
        return state

    def credit(self, lp_token_amount: int, base_in: int, fractional_in: int) -> PoolState:
        """Mint supply and credit both reserves in one write."""
        state = self.load()
        state.apply_add(lp_token_amount, base_in, fractional_in)
        self._store(state)
        return state

    def _store(self, state: PoolState):
        self.store.set_obj(self.key, state.to_dict())

"""
Asset registries used by the pool: the fungible base token, the NFT
collection and the pool's LP share token.

Registries keep no state of their own besides receiver hooks; balances and
ownership live in the state store handed to each call, which lets the pool
run a whole settlement against one snapshot.
"""
import logging
from typing import Callable, Optional

from .crypto import encode_uint256
from .errors import InsufficientLpBalance, TransferError
from .state import StateStore

logger = logging.getLogger(__name__)


class BaseTokenRegistry:
    """Balances of the fungible base token."""

    def __init__(self, namespace: bytes = b"BASE"):
        self.prefix = namespace + b":"

    def _key(self, address: bytes) -> bytes:
        return self.prefix + address

    def balance_of(self, address: bytes, store: StateStore) -> int:
        raw = store.get_obj(self._key(address))
        return int(raw) if raw is not None else 0

    def _set_balance(self, address: bytes, amount: int, store: StateStore):
        store.set_obj(self._key(address), str(amount))

    def mint(self, to_address: bytes, amount: int, store: StateStore):
        """Credit new base tokens (genesis funding)."""
        if amount < 0:
            raise ValueError("Mint amount cannot be negative")
        self._set_balance(to_address, self.balance_of(to_address, store) + amount, store)

    def transfer(self, from_address: bytes, to_address: bytes, amount: int, store: StateStore):
        if amount < 0:
            raise TransferError(f"Invalid base token amount: {amount}")

        balance = self.balance_of(from_address, store)
        if balance < amount:
            raise TransferError(
                f"Insufficient base token balance: {from_address.hex()} has {balance}, needs {amount}"
            )

        self._set_balance(from_address, balance - amount, store)
        self._set_balance(to_address, self.balance_of(to_address, store) + amount, store)
        logger.debug(f"Base transfer {amount}: {from_address.hex()[:8]} -> {to_address.hex()[:8]}")


class NFTRegistry:
    """Ownership of the non-fungible collection."""

    def __init__(self, namespace: bytes = b"NFT"):
        self.prefix = namespace + b":"
        self._receivers: dict[bytes, Callable[[int, bytes], None]] = {}

    def _key(self, token_id: int) -> bytes:
        return self.prefix + encode_uint256(token_id)

    def register_receiver(self, address: bytes, callback: Callable[[int, bytes], None]):
        """
        Call callback(token_id, from_address) whenever an NFT lands on address.

        The callback runs inside the transfer; anything it raises fails the
        transfer and with it the enclosing pool operation.
        """
        self._receivers[address] = callback

    def unregister_receiver(self, address: bytes):
        self._receivers.pop(address, None)

    def owner_of(self, token_id: int, store: StateStore) -> Optional[bytes]:
        owner = store.get(self._key(token_id))
        return owner if owner else None

    def mint(self, token_id: int, to_address: bytes, store: StateStore):
        if self.owner_of(token_id, store) is not None:
            raise TransferError(f"Token {token_id} already exists")
        store.set(self._key(token_id), to_address)

    def transfer_ownership(self, token_id: int, from_address: bytes, to_address: bytes, store: StateStore):
        owner = self.owner_of(token_id, store)
        if owner is None:
            raise TransferError(f"Token {token_id} does not exist")
        if owner != from_address:
            raise TransferError(f"Token {token_id} is not owned by {from_address.hex()}")

        store.set(self._key(token_id), to_address)
        logger.debug(f"NFT {token_id}: {from_address.hex()[:8]} -> {to_address.hex()[:8]}")

        callback = self._receivers.get(to_address)
        if callback is not None:
            callback(token_id, from_address)


class LPTokenRegistry:
    """LP share balances of one pool."""

    def __init__(self, pool_address: bytes):
        self.prefix = b"LP:" + pool_address + b":"

    def _key(self, holder: bytes) -> bytes:
        return self.prefix + holder

    def balance_of(self, holder: bytes, store: StateStore) -> int:
        raw = store.get_obj(self._key(holder))
        return int(raw) if raw is not None else 0

    def mint(self, holder: bytes, amount: int, store: StateStore):
        if amount < 0:
            raise ValueError("Mint amount cannot be negative")
        store.set_obj(self._key(holder), str(self.balance_of(holder, store) + amount))

    def burn(self, holder: bytes, amount: int, store: StateStore):
        if amount < 0:
            raise ValueError("Burn amount cannot be negative")

        balance = self.balance_of(holder, store)
        if balance < amount:
            raise InsufficientLpBalance(
                f"Insufficient LP tokens: {holder.hex()} has {balance}, burning {amount}"
            )
        store.set_obj(self._key(holder), str(balance - amount))

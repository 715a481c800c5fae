"""
Allow-list membership proofs for pool token ids.

A gated pool publishes the root of a Merkle tree over its eligible token
ids. Leaves are keccak256(keccak256(uint256(token_id))) and parents use
sorted-pair hashing, so a proof is just the list of sibling hashes from the
leaf up to the root.
"""
from typing import Iterable, Optional, Sequence

from .crypto import ZERO_HASH, encode_uint256, generate_hash, hash_pair


def is_open_root(root: Optional[bytes]) -> bool:
    """True when no allow-list is configured (any token id is eligible)."""
    return not root or root == ZERO_HASH


def leaf_hash(token_id: int) -> bytes:
    return generate_hash(generate_hash(encode_uint256(token_id)))


def compute_root(token_id: int, proof: Sequence[bytes]) -> bytes:
    """Fold a proof path over the token's leaf."""
    node = leaf_hash(token_id)
    for sibling in proof:
        node = hash_pair(node, bytes(sibling))
    return node


def verify(root: Optional[bytes], token_id: int, proof: Sequence[bytes]) -> bool:
    """
    Check that token_id belongs to the allow-list committed to by root.

    An open pool (no root, or an all-zero root) accepts every token id.
    Ids outside the uint256 range and malformed proofs never verify.
    """
    if is_open_root(root):
        return True
    if proof is None:
        return False
    if isinstance(token_id, bool) or not isinstance(token_id, int) or not 0 <= token_id < 1 << 256:
        return False
    if isinstance(proof, (bytes, str)) or not all(
            isinstance(sibling, (bytes, bytearray)) and len(sibling) == 32 for sibling in proof):
        return False
    return compute_root(token_id, proof) == bytes(root)


class MerkleTree:
    """
    Allow-list tree over a set of token ids.

    Usage:
        tree = MerkleTree([1, 5, 9])
        root = tree.root
        proof = tree.proof(5)
        assert verify(root, 5, proof)
    """

    def __init__(self, token_ids: Iterable[int]):
        self.token_ids = sorted(set(token_ids))
        if not self.token_ids:
            raise ValueError("Allow-list must contain at least one token id")

        # Leaves sorted by hash so the tree is independent of input order
        leaves = sorted(leaf_hash(token_id) for token_id in self.token_ids)
        self._levels: list[list[bytes]] = [leaves]

        level = leaves
        while len(level) > 1:
            next_level = []
            for i in range(0, len(level), 2):
                if i + 1 < len(level):
                    next_level.append(hash_pair(level[i], level[i + 1]))
                else:
                    # Odd node is carried up unchanged
                    next_level.append(level[i])
            self._levels.append(next_level)
            level = next_level

    @property
    def root(self) -> bytes:
        return self._levels[-1][0]

    def proof(self, token_id: int) -> list[bytes]:
        """Sibling path for token_id; raises KeyError if it is not listed."""
        leaf = leaf_hash(token_id)
        try:
            index = self._levels[0].index(leaf)
        except ValueError:
            raise KeyError(f"Token {token_id} is not in the allow-list")

        path = []
        for level in self._levels[:-1]:
            sibling = index ^ 1
            if sibling < len(level):
                path.append(level[sibling])
            index //= 2
        return path

    def proofs(self, token_ids: Iterable[int]) -> list[list[bytes]]:
        """Positionally aligned proofs for a request."""
        return [self.proof(token_id) for token_id in token_ids]

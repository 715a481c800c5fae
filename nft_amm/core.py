"""
Signed pool transactions.
"""
import json
import time
import msgpack
from typing import Optional
from .crypto import generate_hash, public_key_to_address, sign, verify_signature

NFT_ADD = "NFT_ADD"
NFT_REMOVE = "NFT_REMOVE"

TX_TYPES = (NFT_ADD, NFT_REMOVE)


def _is_uint(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _canonical(obj):
    """Integers as decimal strings; msgpack cannot pack values above 64 bits."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        return str(obj)
    if isinstance(obj, dict):
        return {key: _canonical(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_canonical(item) for item in obj]
    return obj


class PoolTransaction:
    def __init__(self,
                 sender_public_key: str,
                 tx_type: str,
                 data: dict,
                 nonce: int,
                 signature: Optional[bytes] = None,
                 timestamp: Optional[float] = None,
                 chain_id: Optional[int] = 1):
        self.sender_public_key = sender_public_key
        self.tx_type = tx_type
        self.data = data
        self.nonce = nonce
        self.timestamp = timestamp or time.time()
        self.signature = signature
        self.chain_id = chain_id

    @classmethod
    def from_dict(cls, data: dict):
        """Creates a PoolTransaction from its dict form."""
        signature = data.get("signature")
        if isinstance(signature, str):
            signature = bytes.fromhex(signature)
        return cls(
            sender_public_key=data["sender_public_key"],
            tx_type=data["tx_type"],
            data=data["data"],
            nonce=data["nonce"],
            signature=signature,
            timestamp=data.get("timestamp"),
            chain_id=data.get("chain_id"),
        )

    def to_dict(self, include_signature=True):
        data = {
            "sender_public_key": self.sender_public_key,
            "tx_type": self.tx_type,
            "data": self.data,
            "nonce": self.nonce,
            "timestamp": self.timestamp,
            "chain_id": self.chain_id,
        }
        if include_signature and self.signature:
            data["signature"] = self.signature
        return data

    def to_json(self) -> str:
        """One-line JSON form; signature and proof hashes as hex."""
        data = self.to_dict()
        if self.signature:
            data["signature"] = self.signature.hex()
        body = dict(self.data)
        if "proofs" in body:
            body["proofs"] = [[bytes(h).hex() for h in proof] for proof in body["proofs"]]
        data["data"] = body
        return json.dumps(data)

    @classmethod
    def from_json(cls, text: str) -> 'PoolTransaction':
        data = json.loads(text)
        body = data.get("data", {})
        if isinstance(body.get("proofs"), list):
            body["proofs"] = [[bytes.fromhex(h) for h in proof] for proof in body["proofs"]]
        return cls.from_dict(data)

    def get_signing_data(self) -> bytes:
        """Canonical byte representation for signing."""
        unsigned = self.to_dict(include_signature=False)
        unsigned["data"] = _canonical(unsigned["data"])
        return msgpack.packb(unsigned, use_bin_type=True)

    def sign(self, private_key):
        self.signature = sign(private_key, self.get_signing_data())

    def verify_signature(self) -> bool:
        if not self.signature:
            return False
        return verify_signature(self.sender_public_key, self.signature, self.get_signing_data())

    @property
    def sender_address(self) -> bytes:
        return public_key_to_address(self.sender_public_key)

    @property
    def id(self) -> bytes:
        """Hash identifier of the transaction."""
        return generate_hash(self.get_signing_data())

    def validate_basic(self) -> tuple[bool, str]:
        """
        Stateless checks on signature and data shape.
        Returns (is_valid, error_message)
        """
        if not self.verify_signature():
            return False, "Invalid signature"

        if self.timestamp > time.time() + 300:  # 5 minutes tolerance
            return False, "Timestamp too far in future"

        if self.tx_type not in TX_TYPES:
            return False, f"Unknown transaction type: {self.tx_type}"

        token_ids = self.data.get('token_ids')
        if not isinstance(token_ids, list) or not all(_is_uint(t) for t in token_ids):
            return False, f"{self.tx_type} requires 'token_ids' as a list of non-negative integers"

        proofs = self.data.get('proofs', [])
        if not isinstance(proofs, list) or not all(
                isinstance(p, list) and all(isinstance(h, bytes) and len(h) == 32 for h in p)
                for p in proofs):
            return False, "'proofs' must be a list of lists of 32-byte hashes"

        if self.tx_type == NFT_ADD:
            if not _is_uint(self.data.get('base_token_amount')) or self.data['base_token_amount'] == 0:
                return False, "NFT_ADD requires a positive integer 'base_token_amount'"
            if not token_ids:
                return False, "NFT_ADD requires at least one token id"
            if not _is_uint(self.data.get('min_lp_token_out', 0)):
                return False, "'min_lp_token_out' must be a non-negative integer"

        elif self.tx_type == NFT_REMOVE:
            if not _is_uint(self.data.get('lp_token_amount')):
                return False, "NFT_REMOVE requires a non-negative integer 'lp_token_amount'"
            if not _is_uint(self.data.get('min_base_token_out', 0)):
                return False, "'min_base_token_out' must be a non-negative integer"

        return True, ""

    def __repr__(self) -> str:
        return f"PoolTransaction(type={self.tx_type}, nonce={self.nonce}, id={self.id.hex()[:8]})"

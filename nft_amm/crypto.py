"""
Hashing and signing primitives for the pool.

Hashes are Keccak-256 so allow-list roots match the ones published for
on-chain collections. Transaction signatures are ECDSA over SHA-256.
"""
import hashlib
from Crypto.Hash import keccak
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives import serialization
from cryptography.exceptions import InvalidSignature

ZERO_HASH = b'\x00' * 32


def generate_hash(data: bytes) -> bytes:
    """Generates a Keccak-256 hash."""
    return keccak.new(digest_bits=256, data=data).digest()


def encode_uint256(value: int) -> bytes:
    """Big-endian 32-byte encoding of an unsigned integer (abi.encode(uint256))."""
    if value < 0 or value >= 1 << 256:
        raise ValueError(f"Value out of uint256 range: {value}")
    return value.to_bytes(32, 'big')


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Order-independent parent hash of two Merkle nodes."""
    if a <= b:
        return generate_hash(a + b)
    return generate_hash(b + a)


def generate_key_pair() -> tuple[ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey]:
    """Generates an ECDSA private/public key pair."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return private_key, private_key.public_key()


def serialize_public_key(public_key: ec.EllipticCurvePublicKey) -> str:
    """PEM text of a public key."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')


def public_key_to_address(public_key_pem: str) -> bytes:
    """20-byte account address derived from a PEM public key."""
    public_key = serialization.load_pem_public_key(public_key_pem.encode('utf-8'))
    der_bytes = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return hashlib.sha256(der_bytes).digest()[:20]


def sign(private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
    return private_key.sign(data, ec.ECDSA(hashes.SHA256()))


def verify_signature(public_key_pem: str, signature: bytes, data: bytes) -> bool:
    """Verifies an ECDSA/SHA256 signature; malformed keys count as invalid."""
    try:
        public_key = serialization.load_pem_public_key(public_key_pem.encode('utf-8'))
        public_key.verify(signature, data, ec.ECDSA(hashes.SHA256()))
        return True
    except (InvalidSignature, ValueError):
        return False

# setup.py
from setuptools import setup, find_packages

setup(
    name="nft_amm",
    version="0.1.0",
    packages=find_packages(include=["nft_amm", "nft_amm.*"]),
    install_requires=[
        "msgpack",            # state encoding
        "plyvel",             # LevelDB
        "pycryptodome",       # keccak256
        "cryptography",       # ECDSA signatures
        "prometheus_client",  # metrics
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "nft-pool=nft_amm.pool_tool:main",
        ],
    },
)

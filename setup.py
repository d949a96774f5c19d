# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="amm_core",
    version="0.1.0",
    packages=find_namespace_packages(include=["amm_core", "amm_core.*"]),
    install_requires=[
        "msgpack",            # state encoding
        "plyvel",             # LevelDB persistence
        "rlp",                # permit / domain struct encoding
        "pycryptodome",       # keccak
        "cryptography",       # ECDSA permit signatures
        "prometheus_client",  # monitoring
    ],
    extras_require={
        "test": ["pytest"],
    },
)

"""BEEFY bridge-finality primitives, voting rounds, gossip validation and utilities."""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "codec",
    "commitment",
    "errors",
    "gossip",
    "hexutil",
    "metrics",
    "mmr",
    "notification",
    "pallet",
    "primitives",
    "round",
    "uncompress",
    "witness",
    "worker",
]
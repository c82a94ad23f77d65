"""Authoritative game room server for the snake arena."""

__all__ = [
    "collision",
    "constants",
    "delta",
    "effects",
    "food",
    "main",
    "player",
    "protocol",
    "registry",
    "room",
    "scores",
    "simulation",
    "utils",
]

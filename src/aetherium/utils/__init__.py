"""Utility functions for the Aetherium battle backend."""

from aetherium.utils.rng import RandomSource, generate_seed, seeded_random

__all__ = [
    "RandomSource",
    "generate_seed",
    "seeded_random",
]

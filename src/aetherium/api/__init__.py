"""HTTP surface for the battle engine."""

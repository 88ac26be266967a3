"""Source map store implementations."""

"""Storage interfaces with in-memory and SQL implementations."""

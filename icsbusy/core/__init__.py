"""Core helpers shared across icsbusy."""

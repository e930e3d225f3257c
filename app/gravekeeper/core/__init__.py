"""Core engine wiring, settings, and application paths."""

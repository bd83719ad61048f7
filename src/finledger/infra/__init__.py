"""Storage infrastructure: engine wiring and repositories."""

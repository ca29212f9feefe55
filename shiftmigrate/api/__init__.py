"""HTTP API for triggering migrations."""

"""Top-level vendorsync commands (one module per command)."""

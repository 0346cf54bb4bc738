"""Top-level serversetup commands (one module per command)."""

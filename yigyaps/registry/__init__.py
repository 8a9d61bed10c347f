"""Data-access layer: one module per store, plain async functions taking a session."""

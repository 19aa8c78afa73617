"""Storage layer.

This package owns the SQLite store, its schema, and the dataset registry.
It exposes the synchronous client used by the CLI and SDK.
"""

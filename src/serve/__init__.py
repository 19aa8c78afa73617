"""Read-side serving components.

This package reassembles stored cells into bounded pages of rows.
"""

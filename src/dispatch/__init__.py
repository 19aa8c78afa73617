"""Background task dispatch.

This module runs store, import, and query work off the caller's thread
and delivers completions asynchronously with generation tokens.
"""

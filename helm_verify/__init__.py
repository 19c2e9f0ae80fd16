"""
.. include:: ../README.md
"""

__all__ = [
    "chart",
    "command",
    "exceptions",
    "helm",
    "manifest",
    "nested",
    "objects",
    "schema",
    "scraper",
    "workload",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]

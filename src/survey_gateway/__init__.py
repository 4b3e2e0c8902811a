"""
Survey Gateway - persistence API for a single survey and its results.

Stores the current survey schema and an append-only ledger of respondent
submissions, and serves both over HTTP to the survey editor and viewer.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

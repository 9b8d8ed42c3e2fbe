"""
Load benchmark for the Hub minting API.

This package submits batches of mint requests under bounded concurrency, polls
each accepted mint until it resolves (created, failed or timed out), optionally
retries failed mints, and reports one outcome row per mint.
"""

from .main import main

__all__ = ["main"]

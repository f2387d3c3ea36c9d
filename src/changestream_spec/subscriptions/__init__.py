"""
Change subscription helpers.
"""

from changestream_spec.subscriptions.drainer import drain

__all__ = ["drain"]

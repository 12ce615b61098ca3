"""Request tracking for async correlation."""

from n8n_sdk._internal.tracking.tracker import RequestTracker

__all__ = ["RequestTracker"]

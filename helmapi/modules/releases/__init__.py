"""
Releases Module - Black Box Interface

Purpose: Chart and release operations
Interface: ReleaseAdapter.install(), upgrade(), uninstall(), list_releases(),
           get_release(), get_history(), get_status(), add_repository()
Hidden: helm argument construction, chart pulling, output mapping

Every call builds its own engine configuration; nothing is cached between
requests.
"""

from .adapter import MAX_HISTORY, ReleaseAdapter

__all__ = ["ReleaseAdapter", "MAX_HISTORY"]

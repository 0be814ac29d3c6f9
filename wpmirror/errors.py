"""
Exception types raised by the wpmirror sync pipeline.
"""


class MirrorError(Exception):
    """Base class for all wpmirror errors."""


class SourceUnavailable(MirrorError):
    """The content query failed outright; the run must abort."""


class AssetFetchFailed(MirrorError):
    """A single asset could not be downloaded."""

    def __init__(self, url, reason):
        super().__init__(f"Failed to download {url}: {reason}")
        self.url = url
        self.reason = reason


class TranscodeFailed(MirrorError):
    """The WebP conversion step failed for one asset."""


class ColorExtractionFailed(MirrorError):
    """No representative color could be derived from an image."""

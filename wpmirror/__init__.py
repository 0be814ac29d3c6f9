"""
wpmirror - mirror a WordPress site into static JSON and WebP assets.

wpmirror fetches published posts over WPGraphQL, downloads the images they
reference from the private origin, converts them to WebP, records a dominant
color per image and writes one JSON document for a static front end to read.
"""

__version__ = "1.0.0"

from .core import Mirror
from .cache import AssetCache
from .transform import ContentTransformer
from .wordpress import ContentFetcher

__all__ = ['Mirror', 'AssetCache', 'ContentTransformer', 'ContentFetcher']

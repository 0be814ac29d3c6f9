"""
Rewrites WordPress posts so they reference only locally cached assets.
"""

import html
import logging
import re
from typing import List, Tuple

from .models import CachedAsset, ContentRecord, NormalizedRecord

# Double-quoted src attributes holding an absolute http(s) image URL
IMAGE_SRC_PATTERN = re.compile(r'src="(https?://[^"]*\.(?:jpg|jpeg|png|gif|webp))"', re.IGNORECASE)

# Responsive and sizing attributes that leak the origin or fight the stylesheet
STRIPPED_ATTRIBUTES = ('srcset', 'sizes', 'width', 'height')
STRIP_PATTERNS = [re.compile(r'\s+' + name + r'="[^"]*"', re.IGNORECASE) for name in STRIPPED_ATTRIBUTES]

TAG_PATTERN = re.compile(r'<[^>]*>')


def strip_tags(markup) -> str:
    """Reduce an HTML fragment to trimmed plain text."""
    if not markup:
        return ''
    return html.unescape(TAG_PATTERN.sub('', markup)).strip()


def strip_attributes(markup: str) -> str:
    for pattern in STRIP_PATTERNS:
        markup = pattern.sub('', markup)
    return markup


class ContentTransformer:
    """Turns a ContentRecord into a NormalizedRecord using an AssetCache."""

    def __init__(self, cache):
        self.cache = cache
        self.logger = logging.getLogger('wpmirror.transform')

    def transform(self, record: ContentRecord) -> NormalizedRecord:
        normalized, _ = self.transform_with_assets(record)
        return normalized

    def transform_with_assets(self, record: ContentRecord) -> Tuple[NormalizedRecord, List[CachedAsset]]:
        """
        Transform ``record`` and report every asset resolution made for it.

        The featured image is resolved first, then inline images in the order
        they appear in the body.
        """
        assets: List[CachedAsset] = []

        hero_image = None
        dominant_color = None
        width = height = None
        if record.featured_image:
            hero = self.cache.resolve(record.featured_image.source_url)
            assets.append(hero)
            hero_image = hero.local_path
            dominant_color = hero.dominant_color
            width = record.featured_image.width
            height = record.featured_image.height

        content, inline = self.rewrite_content(record.content)
        assets.extend(inline)

        normalized = NormalizedRecord(
            slug=record.slug,
            title=record.title,
            description=strip_tags(record.excerpt),
            pub_date=record.date,
            content=content,
            hero_image=hero_image,
            image_width=width,
            image_height=height,
            dominant_color=dominant_color,
            author=record.author,
            categories=list(record.categories),
            tags=list(record.tags),
            wp_id=record.id,
        )
        return normalized, assets

    def rewrite_content(self, content: str) -> Tuple[str, List[CachedAsset]]:
        """
        Point inline image sources at the cache and drop sizing attributes.

        A source that cannot be resolved becomes ``src=""`` so the remote
        origin never survives in the output.
        """
        if not content:
            return content or '', []

        assets: List[CachedAsset] = []

        def replace(match):
            result = self.cache.resolve(match.group(1))
            assets.append(result)
            if result.local_path:
                return f'src="{result.local_path}"'
            self.logger.warning(f"Dropping unresolved image reference: {match.group(1)}")
            return 'src=""'

        content = IMAGE_SRC_PATTERN.sub(replace, content)
        return strip_attributes(content), assets

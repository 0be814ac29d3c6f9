"""
On-disk asset cache.

Every eligible asset is stored once per output root under a filename derived
from its URL, with a ``meta/<filename>.json`` sidecar holding its dominant
color. A file already present in the primary root is authoritative: it is
never re-downloaded or re-encoded.
"""

import hashlib
import json
import logging
import os
import shutil
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote, unquote, urlparse

from .errors import AssetFetchFailed, TranscodeFailed
from .models import CachedAsset

# Extensions rewritten to the target format; anything else is stored as-is
RASTER_EXTENSIONS = ('.jpg', '.jpeg', '.png')
TARGET_EXTENSION = '.webp'
META_DIR = 'meta'


def source_filename(url: str) -> str:
    """Return a safe local filename for the last path segment of ``url``."""
    image_name = unquote(os.path.basename(urlparse(url).path))
    # Remove directory traversal sequences and invalid characters
    image_name = os.path.basename(os.path.normpath(image_name)) if image_name else ''
    if not image_name or image_name in ('.', '..') or '/' in image_name or '\\' in image_name:
        image_name = hashlib.md5(url.encode()).hexdigest()
    return image_name


def target_filename(url: str) -> str:
    """Return the cached filename for ``url`` with raster extensions rewritten to .webp."""
    name = source_filename(url)
    stem, ext = os.path.splitext(name)
    if ext.lower() in RASTER_EXTENSIONS:
        return stem + TARGET_EXTENSION
    return name


class AssetCache:
    """Resolves remote asset URLs to cached local paths."""

    def __init__(self, roots: Sequence[str], fetcher, transcoder, color_extractor, policy,
                 public_prefix: str = '/images'):
        """
        Args:
            roots: Output directories; the first is the primary (dev-facing) root
                and the rest mirror it (production-facing)
            fetcher: AssetFetcher used on a cache miss
            transcoder: ImageTranscoder producing the WebP copy
            color_extractor: ColorExtractor for the metadata sidecar
            policy: OriginPolicy deciding which URLs are cached
            public_prefix: URL path under which the roots are served
        """
        if not roots:
            raise ValueError("AssetCache needs at least one output root")
        self.roots: List[str] = list(roots)
        self.fetcher = fetcher
        self.transcoder = transcoder
        self.color_extractor = color_extractor
        self.policy = policy
        self.public_prefix = public_prefix.rstrip('/')
        self._memo: Dict[str, CachedAsset] = {}
        self.logger = logging.getLogger('wpmirror.cache')

    @property
    def primary_root(self) -> str:
        return self.roots[0]

    def ensure_dirs(self) -> None:
        for root in self.roots:
            os.makedirs(os.path.join(root, META_DIR), exist_ok=True)

    def local_path(self, filename: str) -> str:
        return f"{self.public_prefix}/{quote(filename)}"

    def meta_path(self, root: str, filename: str) -> str:
        return os.path.join(root, META_DIR, f"{filename}.json")

    def resolve(self, url) -> CachedAsset:
        """
        Map a remote asset URL to its cached local path and dominant color.

        URLs outside the private origin are returned unchanged with no side
        effects. Failures never raise: a failed download yields a null path
        and a failed transcode yields the path of the untranscoded original.
        """
        if not self.policy.is_eligible(url):
            return CachedAsset(url, None, CachedAsset.PASSTHROUGH)

        filename = target_filename(url)
        if filename in self._memo:
            return self._memo[filename]

        result = self._resolve(url, filename)
        if result.status != CachedAsset.FAILED:
            self._memo[filename] = result
        return result

    def _resolve(self, url: str, filename: str) -> CachedAsset:
        cached_path = os.path.join(self.primary_root, filename)
        if os.path.isfile(cached_path):
            self.logger.info(f"✓ Already cached: {filename}")
            self._restore_mirrors(filename)
            color = self._cached_color(filename)
            return CachedAsset(self.local_path(filename), color, CachedAsset.CACHED)

        raw_name = source_filename(url)
        self.logger.info(f"📥 Downloading: {raw_name}")
        try:
            data = self.fetcher.fetch(url)
        except AssetFetchFailed as e:
            self.logger.error(f"❌ {e}")
            return CachedAsset(None, None, CachedAsset.FAILED)

        self.ensure_dirs()
        raw_paths = [os.path.join(root, raw_name) for root in self.roots]
        for raw_path in raw_paths:
            with open(raw_path, 'wb') as f:
                f.write(data)

        if raw_name == filename:
            # Already a web format; stored without re-encoding
            color = self.color_extractor.extract(cached_path)
            self.write_meta(filename, color)
            return CachedAsset(self.local_path(filename), color, CachedAsset.DOWNLOADED)

        try:
            self.transcoder.transcode(raw_paths[0], cached_path)
        except TranscodeFailed as e:
            self.logger.error(f"❌ WebP conversion failed for {raw_name}: {e}")
            return CachedAsset(self.local_path(raw_name), None, CachedAsset.DEGRADED)

        for root in self.roots[1:]:
            shutil.copy2(cached_path, os.path.join(root, filename))
        for raw_path in raw_paths:
            os.remove(raw_path)
        self.logger.info(f"✅ Converted: {raw_name} → {filename}")

        color = self.color_extractor.extract(cached_path)
        self.write_meta(filename, color)
        return CachedAsset(self.local_path(filename), color, CachedAsset.DOWNLOADED)

    def _restore_mirrors(self, filename: str) -> None:
        """Copy a cached asset and its sidecar into mirror roots that lack them."""
        source = os.path.join(self.primary_root, filename)
        source_meta = self.meta_path(self.primary_root, filename)
        for root in self.roots[1:]:
            os.makedirs(os.path.join(root, META_DIR), exist_ok=True)
            target = os.path.join(root, filename)
            if not os.path.exists(target):
                shutil.copy2(source, target)
                self.logger.debug(f"Restored mirror copy: {target}")
            target_meta = self.meta_path(root, filename)
            if os.path.exists(source_meta) and not os.path.exists(target_meta):
                shutil.copy2(source_meta, target_meta)

    def read_meta(self, filename: str) -> Optional[dict]:
        """Return the primary sidecar for ``filename``, or None if absent or unreadable."""
        path = self.meta_path(self.primary_root, filename)
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                meta = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable metadata {path}: {e}")
            return None
        if not isinstance(meta, dict) or 'dominantColor' not in meta:
            return None
        return meta

    def _cached_color(self, filename: str) -> Optional[str]:
        meta = self.read_meta(filename)
        if meta is not None:
            return meta['dominantColor']
        # Backfill metadata for assets cached before sidecars existed
        color = self.color_extractor.extract(os.path.join(self.primary_root, filename))
        self.write_meta(filename, color)
        return color

    def write_meta(self, filename: str, color: Optional[str]) -> None:
        for root in self.roots:
            path = self.meta_path(root, filename)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump({'dominantColor': color}, f, indent=2)

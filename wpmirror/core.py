import os
import json
import time
import logging
import tempfile
from datetime import datetime
from typing import Any, Dict, List

import requests
from tqdm import tqdm

from .cache import AssetCache
from .errors import SourceUnavailable
from .fetcher import AssetFetcher, SafeRequestor
from .imaging import ColorExtractor, ImageTranscoder
from .models import CachedAsset, NormalizedRecord, SyncRun
from .origin import OriginPolicy
from .transform import ContentTransformer
from .wordpress import ContentFetcher


class TqdmLoggingHandler(logging.StreamHandler):
    """Console handler that writes through tqdm so progress bars stay intact."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record))
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(logs_dir='logs', verbose=False):
    """Set up logging configuration."""
    logger = logging.getLogger('wpmirror')
    logger.setLevel(logging.DEBUG)

    if not logger.handlers:
        # Console handler for status lines
        console_handler = TqdmLoggingHandler()
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

        # File handler for all logs
        if logs_dir:
            os.makedirs(logs_dir, exist_ok=True)
            log_filename = datetime.now().strftime('wpmirror_%Y-%m-%d_%H-%M-%S.log')
            file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename), encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            logger.addHandler(file_handler)

    return logger


class Mirror:
    """Fetches posts, caches their images and writes the aggregate JSON document."""

    def __init__(self, content_fetcher, transformer, data_file, cache=None, requestor=None, show_progress=True):
        self.content_fetcher = content_fetcher
        self.transformer = transformer
        self.data_file = data_file
        self.cache = cache
        self.requestor = requestor
        self.show_progress = show_progress
        self.logger = logging.getLogger('wpmirror.core')

    @classmethod
    def from_settings(cls, settings: Dict[str, Any], base_dir=None, session=None, show_progress=True):
        """Wire every component from a resolved settings dictionary."""
        base_dir = base_dir or os.getcwd()
        policy = OriginPolicy(settings['private_hosts'])
        requestor = SafeRequestor(policy, session or requests.Session(), timeout=settings['timeout'])

        roots = [
            os.path.join(base_dir, settings['public_dir'], settings['images_subdir']),
            os.path.join(base_dir, settings['dist_dir'], settings['images_subdir']),
        ]
        cache = AssetCache(
            roots,
            AssetFetcher(requestor),
            ImageTranscoder(quality=settings['quality'], engine=settings['transcoder']),
            ColorExtractor(),
            policy,
            public_prefix=settings['public_prefix'],
        )
        return cls(
            ContentFetcher(settings['wordpress_url'], requestor, first=settings['first']),
            ContentTransformer(cache),
            os.path.join(base_dir, settings['data_file']),
            cache=cache,
            requestor=requestor,
            show_progress=show_progress,
        )

    def run(self, images_only=False) -> SyncRun:
        """
        Run one sync.

        Raises:
            SourceUnavailable: If the content source returned no posts. The
                aggregate document is left untouched in that case.
        """
        start_time = time.time()
        run = SyncRun()
        self.logger.info("🚀 Starting sync...")

        if self.cache is not None:
            self.cache.ensure_dirs()

        records = self.content_fetcher.fetch_all()
        if not records:
            raise SourceUnavailable("No posts found. Make sure WordPress is running.")
        self.logger.info(f"✅ Successfully fetched {len(records)} posts")

        seen = set()
        for record in tqdm(records, desc="Syncing posts", unit="post", disable=not self.show_progress):
            if record.slug in seen:
                self.logger.warning(f"Skipping duplicate slug: {record.slug}")
                run.skipped += 1
                continue
            seen.add(record.slug)

            self.logger.info(f"📝 Processing: {record.title or record.slug}")
            try:
                normalized, assets = self.transformer.transform_with_assets(record)
            except Exception as e:
                self.logger.exception(f"❌ Failed to process {record.slug}: {e}")
                run.failed += 1
                continue

            run.records.append(normalized)
            self.tally(run, assets)

        if images_only:
            self.logger.info("Skipping data file (images only)")
        else:
            self.write_output(run.records)

        self.logger.info(f"✅ Sync completed in {time.time() - start_time:.2f} seconds.")
        self.logger.info(f"📊 Stats: {run.summary()}")
        return run

    @staticmethod
    def tally(run: SyncRun, assets: List[CachedAsset]) -> None:
        """Classify one record from the assets resolved for it."""
        if any(asset.status == CachedAsset.FAILED for asset in assets):
            run.failed += 1
        elif any(asset.is_local for asset in assets):
            run.processed += 1
        else:
            run.skipped += 1
        if any(asset.status == CachedAsset.DEGRADED for asset in assets):
            run.degraded += 1

    def write_output(self, records: List[NormalizedRecord]) -> str:
        """Atomically replace the aggregate JSON document."""
        data_dir = os.path.dirname(os.path.abspath(self.data_file))
        if not os.path.isdir(data_dir):
            os.makedirs(data_dir, exist_ok=True)
            self.logger.info(f"📁 Created {data_dir}")

        fd, tmp_path = tempfile.mkstemp(dir=data_dir, prefix='.posts-', suffix='.json.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump([record.to_dict() for record in records], f, indent=2, ensure_ascii=False)
                f.write('\n')
            os.replace(tmp_path, self.data_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        self.logger.info(f"💾 Saved {len(records)} posts to {os.path.relpath(self.data_file)}")
        return self.data_file

    def close(self):
        if self.requestor is not None:
            self.requestor.close()

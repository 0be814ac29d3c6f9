"""
Image transcoding and color extraction.
"""

import colorsys
import logging
import os
import shutil
import subprocess
from typing import List, Optional, Tuple

from PIL import Image

from .errors import ColorExtractionFailed, TranscodeFailed

DEFAULT_QUALITY = 85


class ImageTranscoder:
    """
    Converts raster images to WebP at a fixed quality.

    Uses the ``cwebp`` command line encoder when it is installed and falls
    back to Pillow's WEBP encoder when ``engine`` is ``auto``.
    """

    CWEBP = 'cwebp'

    def __init__(self, quality=DEFAULT_QUALITY, engine='auto', timeout=120):
        if engine not in ('auto', 'cwebp', 'pillow'):
            raise ValueError(f"Unknown transcoder engine: {engine}")
        self.quality = quality
        self.engine = engine
        self.timeout = timeout
        self.logger = logging.getLogger('wpmirror.imaging')

    def resolve_engine(self) -> str:
        if self.engine == 'pillow':
            return 'pillow'
        if shutil.which(self.CWEBP):
            return 'cwebp'
        if self.engine == 'cwebp':
            raise TranscodeFailed(f"{self.CWEBP} not found on PATH")
        return 'pillow'

    def transcode(self, source_path: str, target_path: str) -> str:
        """
        Encode ``source_path`` as WebP at ``target_path``.

        Returns:
            target_path

        Raises:
            TranscodeFailed: If the encoder is missing, exits non-zero or errors
        """
        if not os.path.isfile(source_path):
            raise TranscodeFailed(f"Source image does not exist: {source_path}")

        engine = self.resolve_engine()
        try:
            if engine == 'cwebp':
                self._run_cwebp(source_path, target_path)
            else:
                self._run_pillow(source_path, target_path)

            if not os.path.isfile(target_path) or os.path.getsize(target_path) == 0:
                raise TranscodeFailed(f"Encoder produced no output for {source_path}")
        except TranscodeFailed:
            # A partial file at target_path would later pass for a cached result
            self.remove_partial(target_path)
            raise
        self.logger.debug(f"Transcoded {source_path} -> {target_path} with {engine}")
        return target_path

    def _run_cwebp(self, source_path, target_path):
        cmd = [self.CWEBP, '-quiet', '-q', str(self.quality), source_path, '-o', target_path]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            raise TranscodeFailed(f"{self.CWEBP} timed out after {self.timeout}s on {source_path}")
        except OSError as e:
            raise TranscodeFailed(f"Could not run {self.CWEBP}: {e}")
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or '').strip()
            raise TranscodeFailed(f"{self.CWEBP} exited with {result.returncode}: {detail}")

    def _run_pillow(self, source_path, target_path):
        try:
            with Image.open(source_path) as img:
                if img.mode not in ('RGB', 'RGBA'):
                    img = img.convert('RGBA' if 'transparency' in img.info or img.mode in ('LA', 'PA') else 'RGB')
                img.save(target_path, 'WEBP', quality=self.quality)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise TranscodeFailed(f"Pillow could not convert {source_path}: {e}")

    def remove_partial(self, target_path):
        if os.path.lexists(target_path):
            os.remove(target_path)
            self.logger.debug(f"Removed partial output {target_path}")


# Swatch targets: (name, min_luma, target_luma, max_luma, min_sat, target_sat, max_sat)
SWATCH_TARGETS = [
    ('Vibrant', 0.3, 0.5, 0.7, 0.35, 1.0, 1.0),
    ('DarkVibrant', 0.0, 0.26, 0.45, 0.35, 1.0, 1.0),
    ('Muted', 0.3, 0.5, 0.7, 0.0, 0.3, 0.4),
    ('DarkMuted', 0.0, 0.26, 0.45, 0.0, 0.3, 0.4),
]

WEIGHT_SATURATION = 3.0
WEIGHT_LUMA = 6.5
WEIGHT_POPULATION = 0.5


def to_hex(rgb: Tuple[int, int, int]) -> str:
    """Format an RGB triple as a lowercase ``#rrggbb`` string."""
    r, g, b = (max(0, min(255, int(c))) for c in rgb)
    return f'#{r:02x}{g:02x}{b:02x}'


class ColorExtractor:
    """
    Picks a representative color from an image.

    The image is quantized to a small palette; swatches are scored against
    Vibrant, DarkVibrant, Muted and DarkMuted targets in that order and the
    first target with a candidate wins. When no swatch fits any target the
    most common palette color is used.
    """

    def __init__(self, palette_size=16, max_dimension=128):
        self.palette_size = palette_size
        self.max_dimension = max_dimension
        self.logger = logging.getLogger('wpmirror.imaging')

    def extract(self, image_path: str) -> Optional[str]:
        """Return ``#rrggbb`` for ``image_path``, or None if it cannot be analyzed."""
        try:
            swatches = self.palette(image_path)
            return to_hex(self.choose(swatches))
        except (OSError, ValueError, Image.DecompressionBombError, ColorExtractionFailed) as e:
            self.logger.warning(f"Failed to extract color from {os.path.basename(image_path)}: {e}")
            return None

    def palette(self, image_path: str) -> List[Tuple[Tuple[int, int, int], int]]:
        """Return ``[(rgb, population), ...]`` for the quantized image."""
        with Image.open(image_path) as img:
            img.seek(0)
            rgb = img.convert('RGB')
        rgb.thumbnail((self.max_dimension, self.max_dimension))
        quantized = rgb.quantize(colors=self.palette_size, method=Image.Quantize.MEDIANCUT)
        flat = quantized.getpalette() or []
        counts = quantized.getcolors(self.palette_size) or []

        swatches = []
        for population, index in counts:
            color = tuple(flat[index * 3:index * 3 + 3])
            if len(color) == 3:
                swatches.append((color, population))
        if not swatches:
            raise ColorExtractionFailed("image produced an empty palette")
        return swatches

    def choose(self, swatches) -> Tuple[int, int, int]:
        if not swatches:
            raise ColorExtractionFailed("no swatches to choose from")
        max_population = max(pop for _, pop in swatches)
        for target in SWATCH_TARGETS:
            best = self._best_for_target(target, swatches, max_population)
            if best is not None:
                return best
        return max(swatches, key=lambda s: s[1])[0]

    def _best_for_target(self, target, swatches, max_population):
        _, min_l, target_l, max_l, min_s, target_s, max_s = target
        best, best_score = None, -1.0
        for color, population in swatches:
            _, lum, sat = colorsys.rgb_to_hls(*(c / 255.0 for c in color))
            if not (min_l <= lum <= max_l and min_s <= sat <= max_s):
                continue
            score = (
                (1 - abs(sat - target_s)) * WEIGHT_SATURATION
                + (1 - abs(lum - target_l)) * WEIGHT_LUMA
                + (population / max_population) * WEIGHT_POPULATION
            )
            if score > best_score:
                best, best_score = color, score
        return best

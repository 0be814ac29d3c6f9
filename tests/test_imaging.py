"""Tests for WebP transcoding and color extraction."""

import os
import re
import subprocess
from unittest.mock import Mock, patch

import pytest
from PIL import Image

from wpmirror.errors import TranscodeFailed
from wpmirror.imaging import ColorExtractor, ImageTranscoder, to_hex

HEX_COLOR = re.compile(r'^#[0-9a-f]{6}$')


class TestImageTranscoder:

    def test_pillow_converts_png(self, temp_dir):
        source = os.path.join(temp_dir, 'test.png')
        target = os.path.join(temp_dir, 'test.webp')
        Image.new('RGB', (10, 10), color='red').save(source, 'PNG')

        result = ImageTranscoder(engine='pillow').transcode(source, target)

        assert result == target
        with Image.open(target) as img:
            assert img.format == 'WEBP'

    def test_pillow_converts_palette_image(self, temp_dir):
        source = os.path.join(temp_dir, 'palette.png')
        target = os.path.join(temp_dir, 'palette.webp')
        Image.new('RGB', (10, 10), color='blue').convert('P').save(source, 'PNG')

        ImageTranscoder(engine='pillow').transcode(source, target)

        assert os.path.getsize(target) > 0

    def test_nonexistent_source(self, temp_dir):
        with pytest.raises(TranscodeFailed, match='does not exist'):
            ImageTranscoder(engine='pillow').transcode('/nonexistent/image.png',
                                                       os.path.join(temp_dir, 'x.webp'))

    def test_corrupt_source(self, temp_dir):
        source = os.path.join(temp_dir, 'broken.jpg')
        with open(source, 'wb') as f:
            f.write(b'not an image')

        with pytest.raises(TranscodeFailed):
            ImageTranscoder(engine='pillow').transcode(source, os.path.join(temp_dir, 'broken.webp'))
        assert not os.path.exists(os.path.join(temp_dir, 'broken.webp'))

    @patch('wpmirror.imaging.subprocess.run')
    @patch('wpmirror.imaging.shutil.which')
    def test_cwebp_invocation(self, mock_which, mock_run, temp_dir):
        mock_which.return_value = '/usr/bin/cwebp'
        mock_run.return_value = Mock(returncode=0, stdout='', stderr='')
        source = os.path.join(temp_dir, 'rocket.jpg')
        target = os.path.join(temp_dir, 'rocket.webp')
        Image.new('RGB', (10, 10), color='red').save(source, 'JPEG')
        with open(target, 'wb') as f:
            f.write(b'fake webp data')

        ImageTranscoder(quality=85).transcode(source, target)

        mock_run.assert_called_once()
        cmd = mock_run.call_args[0][0]
        assert cmd[0] == 'cwebp'
        assert cmd[cmd.index('-q') + 1] == '85'
        assert cmd[cmd.index('-o') + 1] == target

    @patch('wpmirror.imaging.subprocess.run')
    @patch('wpmirror.imaging.shutil.which')
    def test_cwebp_nonzero_exit(self, mock_which, mock_run, temp_dir):
        mock_which.return_value = '/usr/bin/cwebp'
        mock_run.return_value = Mock(returncode=255, stdout='', stderr='Unsupported image format')
        source = os.path.join(temp_dir, 'rocket.jpg')
        Image.new('RGB', (10, 10), color='red').save(source, 'JPEG')

        with pytest.raises(TranscodeFailed, match='Unsupported image format'):
            ImageTranscoder().transcode(source, os.path.join(temp_dir, 'rocket.webp'))

    @patch('wpmirror.imaging.subprocess.run')
    @patch('wpmirror.imaging.shutil.which')
    def test_cwebp_timeout(self, mock_which, mock_run, temp_dir):
        mock_which.return_value = '/usr/bin/cwebp'
        mock_run.side_effect = subprocess.TimeoutExpired(cmd='cwebp', timeout=1)
        source = os.path.join(temp_dir, 'rocket.jpg')
        Image.new('RGB', (10, 10), color='red').save(source, 'JPEG')

        with pytest.raises(TranscodeFailed, match='timed out'):
            ImageTranscoder(timeout=1).transcode(source, os.path.join(temp_dir, 'rocket.webp'))

    @patch('wpmirror.imaging.subprocess.run')
    @patch('wpmirror.imaging.shutil.which')
    def test_cwebp_failure_removes_partial_output(self, mock_which, mock_run, temp_dir):
        mock_which.return_value = '/usr/bin/cwebp'
        source = os.path.join(temp_dir, 'rocket.jpg')
        target = os.path.join(temp_dir, 'rocket.webp')
        Image.new('RGB', (10, 10), color='red').save(source, 'JPEG')

        def write_then_fail(cmd, **kwargs):
            with open(cmd[cmd.index('-o') + 1], 'wb') as f:
                f.write(b'RIFFpartial')
            return Mock(returncode=1, stdout='', stderr='Error! Cannot encode picture')
        mock_run.side_effect = write_then_fail

        with pytest.raises(TranscodeFailed):
            ImageTranscoder().transcode(source, target)

        assert not os.path.exists(target)

    @patch('wpmirror.imaging.subprocess.run')
    @patch('wpmirror.imaging.shutil.which')
    def test_empty_output_is_removed(self, mock_which, mock_run, temp_dir):
        mock_which.return_value = '/usr/bin/cwebp'
        source = os.path.join(temp_dir, 'rocket.jpg')
        target = os.path.join(temp_dir, 'rocket.webp')
        Image.new('RGB', (10, 10), color='red').save(source, 'JPEG')

        def write_empty(cmd, **kwargs):
            open(cmd[cmd.index('-o') + 1], 'wb').close()
            return Mock(returncode=0, stdout='', stderr='')
        mock_run.side_effect = write_empty

        with pytest.raises(TranscodeFailed, match='no output'):
            ImageTranscoder().transcode(source, target)

        assert not os.path.exists(target)

    @patch('wpmirror.imaging.shutil.which')
    def test_forced_cwebp_missing(self, mock_which, temp_dir):
        mock_which.return_value = None
        source = os.path.join(temp_dir, 'rocket.jpg')
        Image.new('RGB', (10, 10), color='red').save(source, 'JPEG')

        with pytest.raises(TranscodeFailed, match='not found'):
            ImageTranscoder(engine='cwebp').transcode(source, os.path.join(temp_dir, 'rocket.webp'))

    @patch('wpmirror.imaging.shutil.which')
    def test_auto_falls_back_to_pillow(self, mock_which, temp_dir):
        mock_which.return_value = None
        source = os.path.join(temp_dir, 'rocket.jpg')
        target = os.path.join(temp_dir, 'rocket.webp')
        Image.new('RGB', (10, 10), color='red').save(source, 'JPEG')

        ImageTranscoder(engine='auto').transcode(source, target)

        assert os.path.exists(target)

    def test_unknown_engine(self):
        with pytest.raises(ValueError):
            ImageTranscoder(engine='imagemagick')


class TestColorExtractor:

    def save(self, temp_dir, name, color, mode='RGB', format='PNG'):
        path = os.path.join(temp_dir, name)
        Image.new(mode, (40, 40), color=color).save(path, format)
        return path

    def test_vibrant_solid_color(self, temp_dir):
        path = self.save(temp_dir, 'red.png', (255, 0, 0))
        assert ColorExtractor().extract(path) == '#ff0000'

    def test_prefers_vibrant_over_muted(self, temp_dir):
        path = os.path.join(temp_dir, 'mixed.png')
        img = Image.new('RGB', (40, 40), color=(120, 120, 110))
        img.paste((20, 60, 230), (0, 0, 10, 10))
        img.save(path, 'PNG')

        assert ColorExtractor().extract(path) == '#143ce6'

    def test_white_image_falls_back_to_most_common(self, temp_dir):
        path = self.save(temp_dir, 'white.png', (255, 255, 255))
        assert ColorExtractor().extract(path) == '#ffffff'

    def test_webp_output_matches_format(self, temp_dir):
        path = self.save(temp_dir, 'teal.webp', (10, 140, 130), format='WEBP')
        assert HEX_COLOR.match(ColorExtractor().extract(path))

    def test_rgba_image(self, temp_dir):
        path = self.save(temp_dir, 'alpha.png', (0, 200, 0, 128), mode='RGBA')
        assert HEX_COLOR.match(ColorExtractor().extract(path))

    def test_undecodable_file_returns_none(self, temp_dir):
        path = os.path.join(temp_dir, 'broken.webp')
        with open(path, 'wb') as f:
            f.write(b'garbage')
        assert ColorExtractor().extract(path) is None

    def test_missing_file_returns_none(self):
        assert ColorExtractor().extract('/nonexistent/image.webp') is None


@pytest.mark.parametrize('rgb, expected', [
    ((0, 0, 0), '#000000'),
    ((1, 2, 3), '#010203'),
    ((255, 171, 16), '#ffab10'),
])
def test_to_hex_zero_pads(rgb, expected):
    assert to_hex(rgb) == expected

"""Test configuration and fixtures for wpmirror tests."""

import io
import json
import os
import shutil
import sys
import tempfile
from unittest.mock import Mock

import pytest
import requests
from PIL import Image

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from wpmirror.cache import AssetCache
from wpmirror.imaging import ColorExtractor, ImageTranscoder
from wpmirror.origin import OriginPolicy


def make_image_bytes(format='JPEG', size=(32, 32), color=(200, 30, 30)):
    """Create a test image in memory."""
    img = Image.new('RGB', size, color=color)
    img_bytes = io.BytesIO()
    img.save(img_bytes, format=format)
    return img_bytes.getvalue()


def make_response(status_code=200, content=b'', json_data=None, url='http://site.local/'):
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response.reason = 'OK' if status_code < 400 else 'Error'
    if json_data is not None:
        content = json.dumps(json_data).encode('utf-8')
        response.headers['Content-Type'] = 'application/json'
    response._content = content
    return response


def graphql_node(slug='rocket-launch', featured_url='http://site.local/img/rocket.jpg', **overrides):
    node = {
        'id': 'cG9zdDox',
        'slug': slug,
        'title': 'Rocket Launch',
        'content': '<p>Liftoff.</p>',
        'excerpt': '<p>A rocket &amp; a launch.</p>',
        'date': '2024-03-01T10:30:00',
        'featuredImage': {
            'node': {
                'sourceUrl': featured_url,
                'altText': 'A rocket',
                'mediaDetails': {'width': 1200, 'height': 800},
            }
        } if featured_url else None,
        'author': {'node': {'name': 'Ada'}},
        'categories': {'nodes': [{'name': 'Launches', 'slug': 'launches'}]},
        'tags': {'nodes': [{'name': 'Falcon', 'slug': 'falcon'}]},
    }
    node.update(overrides)
    return node


def graphql_payload(nodes):
    return {'data': {'posts': {'nodes': nodes}}}


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes('JPEG')


@pytest.fixture
def png_bytes():
    return make_image_bytes('PNG')


@pytest.fixture
def image_roots(temp_dir):
    return [
        os.path.join(temp_dir, 'public', 'images'),
        os.path.join(temp_dir, 'dist', 'images'),
    ]


@pytest.fixture
def mock_fetcher(jpeg_bytes):
    """AssetFetcher stand-in that always returns a small JPEG."""
    fetcher = Mock()
    fetcher.fetch.return_value = jpeg_bytes
    return fetcher


@pytest.fixture
def make_cache(image_roots, mock_fetcher):
    """Factory for AssetCache instances sharing the same roots."""
    def factory(fetcher=None, transcoder=None, color_extractor=None):
        return AssetCache(
            image_roots,
            fetcher or mock_fetcher,
            transcoder or ImageTranscoder(engine='pillow'),
            color_extractor or ColorExtractor(),
            OriginPolicy(),
        )
    return factory


@pytest.fixture
def settings(temp_dir):
    return {
        'wordpress_url': 'http://site.local',
        'first': 100,
        'public_dir': 'public',
        'dist_dir': 'dist',
        'images_subdir': 'images',
        'public_prefix': '/images',
        'data_file': os.path.join('src', 'data', 'posts.json'),
        'quality': 85,
        'timeout': 30,
        'private_hosts': ['.local', 'localhost'],
        'transcoder': 'pillow',
        'logs_dir': None,
    }

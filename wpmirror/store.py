"""
Read side of the aggregate JSON document.
The rendering layer loads synced posts through these helpers instead of
talking to WordPress.
"""

import json
from typing import List, Optional

from .models import NormalizedRecord


def load_posts(path) -> List[NormalizedRecord]:
    """Load every post from the aggregate document, with parsed publish dates."""
    with open(path, 'r', encoding='utf-8') as f:
        payload = json.load(f)
    if not isinstance(payload, list):
        raise ValueError(f"{path} does not contain a list of posts")
    return [NormalizedRecord.from_dict(item) for item in payload]


def posts_by_category(posts: List[NormalizedRecord], category: str) -> List[NormalizedRecord]:
    wanted = category.lower()
    return [post for post in posts if any(term.name.lower() == wanted for term in post.categories)]


def post_by_slug(posts: List[NormalizedRecord], slug: str) -> Optional[NormalizedRecord]:
    for post in posts:
        if post.slug == slug:
            return post
    return None


class StaticPosts:
    """Lazily loaded view over one aggregate document."""

    def __init__(self, path):
        self.path = path
        self._posts = None

    def all(self) -> List[NormalizedRecord]:
        if self._posts is None:
            self._posts = load_posts(self.path)
        return list(self._posts)

    def by_category(self, category: str) -> List[NormalizedRecord]:
        return posts_by_category(self.all(), category)

    def by_slug(self, slug: str) -> Optional[NormalizedRecord]:
        return post_by_slug(self.all(), slug)

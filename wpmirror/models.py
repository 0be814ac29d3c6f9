"""
Typed records passed between the fetch, transform and cache stages.

WPGraphQL nodes are validated and defaulted field by field in
``ContentRecord.from_node`` so nothing downstream touches the raw response.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Any, Dict, List, Optional


DATE_FORMATS = ['%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M:%S.%f', '%Y-%m-%d %H:%M:%S', '%Y-%m-%d']


def parse_date(value) -> datetime:
    """
    Parse a publish timestamp.

    Args:
        value: datetime, date or string as returned by WordPress

    Returns:
        Parsed datetime

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        try:
            return datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            pass
    raise ValueError(f"Unparseable date: {value!r}")


def _node(value) -> Dict[str, Any]:
    """Unwrap a WPGraphQL ``{node: {...}}`` edge, tolerating nulls."""
    if isinstance(value, dict):
        inner = value.get('node')
        if isinstance(inner, dict):
            return inner
    return {}


def _nodes(value) -> List[Dict[str, Any]]:
    """Unwrap a WPGraphQL ``{nodes: [...]}`` connection, tolerating nulls."""
    if isinstance(value, dict) and isinstance(value.get('nodes'), list):
        return [item for item in value['nodes'] if isinstance(item, dict)]
    return []


def _optional_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number or None


@dataclass
class Term:
    """A category or tag label."""

    name: str
    slug: str

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> 'Term':
        name = str(node.get('name') or '')
        slug = str(node.get('slug') or '')
        return cls(name=name, slug=slug)

    def to_dict(self) -> Dict[str, str]:
        return {'name': self.name, 'slug': self.slug}


@dataclass
class FeaturedImage:
    source_url: str
    alt_text: str = ''
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class ContentRecord:
    """A published post as delivered by the remote content API."""

    id: str
    slug: str
    title: str
    content: str
    date: datetime
    excerpt: Optional[str] = None
    featured_image: Optional[FeaturedImage] = None
    author: Optional[str] = None
    categories: List[Term] = field(default_factory=list)
    tags: List[Term] = field(default_factory=list)

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> 'ContentRecord':
        """
        Build a record from one ``posts.nodes[]`` item.

        Args:
            node: Decoded JSON object for a single post

        Returns:
            A fully-typed ContentRecord

        Raises:
            ValueError: If the node has no slug or no usable date
        """
        if not isinstance(node, dict):
            raise ValueError(f"Expected an object, got {type(node).__name__}")

        slug = node.get('slug')
        if not slug or not isinstance(slug, str):
            raise ValueError(f"Post {node.get('id')!r} has no slug")

        featured = None
        image_node = _node(node.get('featuredImage'))
        if image_node.get('sourceUrl'):
            details = image_node.get('mediaDetails') or {}
            featured = FeaturedImage(
                source_url=str(image_node['sourceUrl']),
                alt_text=str(image_node.get('altText') or ''),
                width=_optional_int(details.get('width')),
                height=_optional_int(details.get('height')),
            )

        excerpt = node.get('excerpt')
        author = _node(node.get('author')).get('name')

        return cls(
            id=str(node.get('id') or slug),
            slug=slug,
            title=str(node.get('title') or ''),
            content=str(node.get('content') or ''),
            date=parse_date(node.get('date')),
            excerpt=str(excerpt) if excerpt else None,
            featured_image=featured,
            author=str(author) if author else None,
            categories=[Term.from_node(n) for n in _nodes(node.get('categories'))],
            tags=[Term.from_node(n) for n in _nodes(node.get('tags'))],
        )


@dataclass
class NormalizedRecord:
    """A post with every asset reference rewritten to the local cache."""

    slug: str
    title: str
    description: str
    pub_date: datetime
    content: str
    hero_image: Optional[str] = None
    image_width: Optional[int] = None
    image_height: Optional[int] = None
    dominant_color: Optional[str] = None
    author: Optional[str] = None
    categories: List[Term] = field(default_factory=list)
    tags: List[Term] = field(default_factory=list)
    wp_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the shape the rendering layer reads."""
        return {
            'id': self.slug,
            'slug': self.slug,
            'data': {
                'title': self.title,
                'description': self.description,
                'pubDate': self.pub_date.isoformat(),
                'heroImage': self.hero_image,
                'imageWidth': self.image_width,
                'imageHeight': self.image_height,
                'dominantColor': self.dominant_color,
                'author': self.author,
                'categories': [term.to_dict() for term in self.categories],
                'tags': [term.to_dict() for term in self.tags],
                'wpId': self.wp_id,
            },
            'content': self.content,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> 'NormalizedRecord':
        data = payload.get('data') or {}
        return cls(
            slug=payload['slug'],
            title=data.get('title') or '',
            description=data.get('description') or '',
            pub_date=parse_date(data.get('pubDate')),
            content=payload.get('content') or '',
            hero_image=data.get('heroImage'),
            image_width=data.get('imageWidth'),
            image_height=data.get('imageHeight'),
            dominant_color=data.get('dominantColor'),
            author=data.get('author'),
            categories=[Term.from_node(t) for t in data.get('categories') or []],
            tags=[Term.from_node(t) for t in data.get('tags') or []],
            wp_id=data.get('wpId'),
        )


@dataclass
class CachedAsset:
    """Outcome of resolving one asset URL through the cache."""

    PASSTHROUGH = 'passthrough'
    CACHED = 'cached'
    DOWNLOADED = 'downloaded'
    DEGRADED = 'degraded'
    FAILED = 'failed'

    local_path: Optional[str]
    dominant_color: Optional[str] = None
    status: str = PASSTHROUGH

    @property
    def eligible(self) -> bool:
        return self.status != self.PASSTHROUGH

    @property
    def is_local(self) -> bool:
        return self.status in (self.CACHED, self.DOWNLOADED, self.DEGRADED)


@dataclass
class SyncRun:
    """Per-invocation tally; never persisted."""

    processed: int = 0
    skipped: int = 0
    failed: int = 0
    degraded: int = 0
    records: List[NormalizedRecord] = field(default_factory=list)

    def summary(self) -> str:
        return (f"{self.processed} processed, {self.skipped} skipped, "
                f"{self.failed} failed, {self.degraded} degraded")

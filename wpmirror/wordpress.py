"""
WordPress GraphQL client for fetching published posts at sync time.
"""

import logging
from typing import List

from .errors import SourceUnavailable
from .models import ContentRecord

GET_POSTS_QUERY = """
query GetPosts($first: Int = 100) {
  posts(first: $first, where: { status: PUBLISH }) {
    nodes {
      id
      slug
      title
      content
      excerpt
      date
      featuredImage {
        node {
          sourceUrl
          altText
          mediaDetails {
            width
            height
          }
        }
      }
      author {
        node {
          name
        }
      }
      categories {
        nodes {
          name
          slug
        }
      }
      tags {
        nodes {
          name
          slug
        }
      }
    }
  }
}
"""


class ContentFetcher:
    """Fetches published posts from a WPGraphQL endpoint."""

    def __init__(self, wordpress_url, requestor, first=100):
        """
        Args:
            wordpress_url: Base URL of the WordPress site
            requestor: SafeRequestor used for the POST
            first: Maximum number of posts to request
        """
        self.wordpress_url = wordpress_url.rstrip('/')
        self.requestor = requestor
        self.first = first
        self.logger = logging.getLogger('wpmirror.wordpress')

    @property
    def endpoint(self) -> str:
        return f"{self.wordpress_url}/graphql"

    def fetch_all(self) -> List[ContentRecord]:
        """
        Fetch up to ``first`` published posts.

        Returns an empty list when the source cannot be queried; callers must
        read that as "source unavailable", not "no content".
        """
        try:
            return self.fetch_all_or_raise()
        except SourceUnavailable as e:
            self.logger.error(f"Error fetching WordPress posts: {e}")
            return []

    def fetch_all_or_raise(self) -> List[ContentRecord]:
        self.logger.info(f"🔗 Fetching posts from: {self.endpoint}")
        success, result = self.requestor.safe_post(
            self.endpoint,
            json={'query': GET_POSTS_QUERY, 'variables': {'first': self.first}},
            headers={'Content-Type': 'application/json'},
        )
        if not success:
            raise SourceUnavailable(f"GraphQL API error: {result}")

        try:
            payload = result.json()
        except ValueError as e:
            raise SourceUnavailable(f"Invalid JSON from {self.endpoint}: {e}")
        if not isinstance(payload, dict):
            raise SourceUnavailable(f"Unexpected response from {self.endpoint}")

        errors = payload.get('errors')
        if errors:
            messages = ', '.join(
                str(err.get('message', err)) if isinstance(err, dict) else str(err)
                for err in errors
            )
            raise SourceUnavailable(f"GraphQL errors: {messages}")

        data = payload.get('data')
        posts = data.get('posts') if isinstance(data, dict) else None
        nodes = posts.get('nodes') if isinstance(posts, dict) else None
        if not isinstance(nodes, list):
            nodes = []

        records = []
        for node in nodes:
            try:
                records.append(ContentRecord.from_node(node))
            except ValueError as e:
                self.logger.warning(f"Skipping malformed post: {e}")

        self.logger.info(f"📄 Found {len(records)} posts")
        return records

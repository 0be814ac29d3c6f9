"""
Origin gating for wpmirror.
Decides which asset URLs belong to the private content origin (and so must be
mirrored locally) and rejects malformed URLs before any request is made.
"""

import re
from urllib.parse import urlparse
from typing import Iterable, List, Set, Tuple


class OriginPolicy:
    """
    Classifies URLs as private-origin (eligible for caching) or pass-through.
    """

    # Allowed URL schemes
    ALLOWED_SCHEMES: Set[str] = {'http', 'https'}

    # Hostname fragments identifying a local development origin
    DEFAULT_PRIVATE_HOSTS: List[str] = ['.local', 'localhost']

    # Patterns that never appear in a legitimate media URL
    SUSPICIOUS_PATTERNS: List[str] = [
        r'%2f%2f',           # Double slash encoding
        r'%5c%5c',           # Double backslash encoding
        r'\.\./',            # Directory traversal
        r'%2e%2e%2f',        # Encoded directory traversal
        r'file://',          # File scheme
        r'javascript:',      # JavaScript scheme
    ]

    def __init__(self, private_hosts: Iterable[str] = None):
        """
        Initialize the policy.

        Args:
            private_hosts: Substrings that mark a hostname as the private origin
        """
        hosts = self.DEFAULT_PRIVATE_HOSTS if private_hosts is None else private_hosts
        self.private_hosts = [h.lower() for h in hosts if h]

    def is_eligible(self, url) -> bool:
        """
        Check whether an asset URL points at the private origin.

        Relative paths, public hosts and empty values are not eligible and
        pass through the pipeline untouched.

        Args:
            url: The asset URL

        Returns:
            True if the asset should be downloaded and cached
        """
        if not url or not isinstance(url, str):
            return False
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            return False
        hostname = (parsed.hostname or '').lower()
        if not hostname:
            return False
        return any(fragment in hostname for fragment in self.private_hosts)

    def validate_url(self, url: str) -> Tuple[bool, str]:
        """
        Validate a URL before requesting it.

        Args:
            url: The URL to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            parsed = urlparse(url)
        except ValueError as e:
            return False, f"URL validation error: {e}"

        if not parsed.scheme or not parsed.netloc:
            return False, "Invalid URL format"

        if parsed.scheme.lower() not in self.ALLOWED_SCHEMES:
            return False, f"Unsupported URL scheme: {parsed.scheme}"

        if not parsed.hostname:
            return False, "Invalid hostname in URL"

        # User info in the netloc can disguise the real host
        if '@' in parsed.netloc:
            return False, "URL contains credentials"

        url_lower = url.lower()
        for pattern in self.SUSPICIOUS_PATTERNS:
            if re.search(pattern, url_lower):
                return False, "URL contains suspicious patterns"

        return True, "URL is valid"

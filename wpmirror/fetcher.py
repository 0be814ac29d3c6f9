"""
HTTP access for wpmirror.
SafeRequestor validates URLs and applies timeouts and headers to every request;
AssetFetcher retrieves a single remote binary without transforming it.
"""

import logging
from typing import Tuple, Union

import requests

from . import __version__
from .errors import AssetFetchFailed
from .origin import OriginPolicy

USER_AGENT = f'wpmirror/{__version__} (Static Content Mirror)'


class SafeRequestor:
    """
    HTTP requestor that validates URLs before making requests.
    """

    def __init__(self, policy: OriginPolicy = None, session=None, timeout: int = 30):
        """
        Initialize safe requestor.

        Args:
            policy: Origin policy used for URL validation
            session: Requests session to use
            timeout: Timeout in seconds applied to every request
        """
        self.policy = policy or OriginPolicy()
        self.session = session or requests.Session()
        self.timeout = timeout

    def _prepare(self, kwargs):
        kwargs.setdefault('timeout', self.timeout)
        headers = dict(kwargs.get('headers') or {})
        headers.setdefault('User-Agent', USER_AGENT)
        kwargs['headers'] = headers
        return kwargs

    def safe_get(self, url: str, **kwargs) -> Tuple[bool, Union[requests.Response, str]]:
        """
        Make a GET request after URL validation.

        Args:
            url: URL to request
            **kwargs: Additional arguments for session.get()

        Returns:
            Tuple of (success, response_or_error_message)
        """
        return self._request('get', url, **kwargs)

    def safe_post(self, url: str, **kwargs) -> Tuple[bool, Union[requests.Response, str]]:
        """
        Make a POST request after URL validation.

        Args:
            url: URL to request
            **kwargs: Additional arguments for session.post()

        Returns:
            Tuple of (success, response_or_error_message)
        """
        return self._request('post', url, **kwargs)

    def _request(self, method, url, **kwargs):
        is_valid, error_msg = self.policy.validate_url(url)
        if not is_valid:
            return False, f"URL validation failed: {error_msg}"

        kwargs = self._prepare(kwargs)
        try:
            response = getattr(self.session, method)(url, **kwargs)
            response.raise_for_status()
            return True, response
        except requests.exceptions.Timeout:
            return False, f"Request timed out after {kwargs['timeout']}s"
        except requests.exceptions.RequestException as e:
            return False, f"HTTP request failed: {e}"

    def close(self):
        self.session.close()


class AssetFetcher:
    """Downloads a single remote asset."""

    def __init__(self, requestor: SafeRequestor):
        self.requestor = requestor
        self.logger = logging.getLogger('wpmirror.fetcher')

    def fetch(self, url: str) -> bytes:
        """
        Download the raw bytes behind ``url``.

        Raises:
            AssetFetchFailed: On a non-success status, transport error or empty body
        """
        self.logger.debug(f"GET {url}")
        success, result = self.requestor.safe_get(url, allow_redirects=True)
        if not success:
            raise AssetFetchFailed(url, result)
        if not result.content:
            raise AssetFetchFailed(url, "empty response body")
        return result.content

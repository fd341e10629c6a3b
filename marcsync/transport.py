"""
HTTP transport for the marcsync REST API.

Wraps the blocking ``requests`` call in ``asyncio.to_thread`` and applies
the response classification shared by every operation: a 401 status is
always ``Unauthorized``; network errors, undecodable bodies and a falsy
``success`` flag become ``RequestFailed``.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from marcsync.config.defaults import COLLECTION_PATH, ENTRIES_PATH
from marcsync.errors import RequestFailed, Unauthorized

logger = logging.getLogger(__name__)


def collection_path(collection_name: str) -> str:
    """Path of the collection lifecycle resource"""
    return f"{COLLECTION_PATH}/{quote(collection_name, safe='')}"


def entries_path(collection_name: str) -> str:
    """Path of the entry CRUD resource"""
    return f"{ENTRIES_PATH}/{quote(collection_name, safe='')}"


class HttpTransport:
    """
    Credential-bound request helper.

    Holds no per-request state, so one instance is shared by a client, its
    collections and every owned entry they produce.
    """

    def __init__(self, access_token: str, api_url: str, timeout: float = 30.0):
        self._access_token = access_token
        self._api_url = api_url.rstrip('/')
        self._timeout = timeout

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def timeout(self) -> float:
        return self._timeout

    def _headers(self, with_body: bool) -> Dict[str, str]:
        headers = {"authorization": self._access_token}
        if with_body:
            headers["content-type"] = "application/json"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Issue one request and return the decoded JSON envelope.

        Args:
            method: HTTP verb
            path: Resource path below the API base URL
            body: Optional JSON body
            params: Optional query parameters

        Returns:
            Decoded response body with a truthy ``success`` flag

        Raises:
            Unauthorized: Backend answered 401
            RequestFailed: Any other failure
        """
        url = f"{self._api_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            response = await asyncio.to_thread(
                requests.request,
                method,
                url,
                headers=self._headers(body is not None),
                json=body,
                params=params,
                timeout=self._timeout
            )
        except requests.RequestException as e:
            logger.debug(f"{method} {url} failed: {e}")
            raise RequestFailed(f"{method} {path} failed: {e}") from e
        except TypeError as e:
            # Body not JSON serializable
            raise RequestFailed(f"{method} {path} body could not be encoded: {e}") from e

        if response.status_code == 401:
            raise Unauthorized()

        try:
            payload = response.json()
        except ValueError as e:
            raise RequestFailed(
                f"{method} {path} returned an undecodable body",
                status_code=response.status_code
            ) from e

        if not isinstance(payload, dict) or not payload.get("success"):
            logger.debug(f"{method} {url} rejected with HTTP {response.status_code}")
            raise RequestFailed(
                f"{method} {path} was rejected",
                status_code=response.status_code
            )

        return payload

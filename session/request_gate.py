"""Authenticated Request Gate: bearer injection plus one refresh-and-retry"""

import logging
from typing import Any, Dict, Optional

import httpx

from .auth_client import AuthServiceClient
from .errors import ApiError, ServiceUnavailable, SessionExpired
from .models import TokenPair
from .store import SessionStore
from .token_refresh import SilentRefresher

logger = logging.getLogger(__name__)


class AuthenticatedRequestGate:
    """Wraps outbound API calls with the session's access token

    A request rejected with 401 is retried at most once, after the
    session has been refreshed. Requests made while logged out go out
    unauthenticated and the API rejects them on its own terms.
    """

    def __init__(self, store: SessionStore, refresher: SilentRefresher, client: AuthServiceClient):
        self.store = store
        self.refresher = refresher
        self.client = client

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, refreshing and retrying once on 401

        Args:
            method: HTTP method
            url: Absolute URL or path relative to the API base URL
            headers: Extra request headers
            **kwargs: Passed through to httpx (json, params, content, ...)

        Raises:
            SessionExpired: refresh failed, or the retry was also rejected
            ServiceUnavailable: network error or timeout
        """
        sent_with = self.store.get_token_pair()
        response = await self._send_once(method, url, sent_with, headers, kwargs)

        if response.status_code != 401 or sent_with is None:
            return response

        logger.info(f"{method} {url} rejected with 401, refreshing session before retry")
        current = self.store.get_token_pair()
        if current is None or current.access_token == sent_with.access_token:
            await self.refresher.refresh()
            current = self.store.get_token_pair()
        else:
            logger.debug("Token pair already rotated by another caller, retrying with it")

        if current is None:
            raise SessionExpired("Session ended before the request could be retried")

        epoch = self.store.epoch
        retry = await self._send_once(method, url, current, headers, kwargs)
        if retry.status_code != 401:
            return retry

        logger.error(f"{method} {url} rejected with 401 again after refresh, ending session")
        if self.store.epoch == epoch:
            self.store.clear(expired=True)
        raise SessionExpired("Request rejected after refreshing the session")

    async def _send_once(
        self,
        method: str,
        url: str,
        token_pair: Optional[TokenPair],
        headers: Optional[Dict[str, str]],
        kwargs: Dict[str, Any],
    ) -> httpx.Response:
        request_headers = dict(headers or {})
        # Never forward a caller-supplied credential alongside ours
        request_headers = {k: v for k, v in request_headers.items() if k.lower() != "authorization"}
        if token_pair is not None:
            request_headers["Authorization"] = f"Bearer {token_pair.access_token}"

        kwargs.setdefault("timeout", self.client.timeout)
        try:
            return await self.client.http.request(
                method,
                self.client.url_for(url),
                headers=request_headers,
                **kwargs,
            )
        except httpx.TimeoutException as e:
            logger.error(f"{method} {url} timed out: {e}")
            raise ServiceUnavailable(f"{method} {url} timed out") from e
        except httpx.RequestError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ServiceUnavailable(f"Could not reach the API: {e}") from e

    async def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        """Send through the gate and decode the JSON body

        Raises:
            ApiError: non-2xx response (other than the 401 path above)
        """
        response = await self.send(method, url, **kwargs)
        payload = _decode(response)
        if response.status_code < 200 or response.status_code >= 300:
            logger.warning(f"{method} {url} failed with status {response.status_code}")
            raise ApiError(response.status_code, payload)
        return payload

    async def get(self, url: str, **kwargs: Any) -> Any:
        return await self.request_json("GET", url, **kwargs)

    async def post(self, url: str, data: Any = None, **kwargs: Any) -> Any:
        return await self.request_json("POST", url, json=data, **kwargs)

    async def put(self, url: str, data: Any = None, **kwargs: Any) -> Any:
        return await self.request_json("PUT", url, json=data, **kwargs)

    async def patch(self, url: str, data: Any = None, **kwargs: Any) -> Any:
        return await self.request_json("PATCH", url, json=data, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> Any:
        return await self.request_json("DELETE", url, **kwargs)


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text

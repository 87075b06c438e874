from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

import requests

from aisentinel.client.errors import ApiError, UnauthorizedError
from aisentinel.core.logger import get_logger

logger = get_logger("aisentinel.client.api")

HEADER_TOKEN_PREFIX = "prod-"

# what to do with a 401 from a query
ON_401_REDIRECT = "redirect"
ON_401_THROW = "throw"
ON_401_RETURN_NONE = "return_none"


def auth_headers(token: Optional[str]) -> Dict[str, str]:
    if token and token.startswith(HEADER_TOKEN_PREFIX):
        return {
            "Authorization": f"Bearer {token}",
            "X-Session-Token": token,
        }
    return {}


class ApiClient:
    """
    JSON over HTTP with the session credential attached. Cookies ride on the
    ``requests.Session`` jar; the header token comes from ``token_provider``.
    Both go out together and the server accepts either.
    """

    def __init__(
        self,
        base_url: str,
        http: Optional[requests.Session] = None,
        timeout: float = 30.0,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[str], None]] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.http = http or requests.Session()
        self.timeout = timeout
        self.token_provider = token_provider or (lambda: None)
        self.on_unauthorized = on_unauthorized

    def url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        on401: str = ON_401_THROW,
    ) -> Any:
        url = self.url(path)
        request_headers = {"Content-Type": "application/json"} if json is not None else {}
        request_headers.update(auth_headers(self.token_provider()))
        request_headers.update(headers or {})

        try:
            response = self.http.request(
                method,
                url,
                json=json,
                headers=request_headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"API {method} FAILED | url={url} | error={e}")
            raise ApiError(0, f"Request failed: {e}") from e

        logger.debug(f"API {method} | url={url} | status={response.status_code}")

        if response.status_code == 401:
            if on401 == ON_401_RETURN_NONE:
                return None
            payload = self._payload(response)
            if on401 == ON_401_REDIRECT and self.on_unauthorized:
                self.on_unauthorized(url)
            raise UnauthorizedError(self._message(response, payload), payload)

        if not response.ok:
            payload = self._payload(response)
            raise ApiError(response.status_code, self._message(response, payload), payload)

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise ApiError(response.status_code, f"Expected JSON response but got {content_type or 'nothing'}")
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"API {method} BAD JSON | url={url} | error={e}")
            raise ApiError(response.status_code, "Invalid JSON response") from e

    def get(self, path: str, on401: str = ON_401_REDIRECT, **kwargs) -> Any:
        return self.request("GET", path, on401=on401, **kwargs)

    def post(self, path: str, json: Optional[Any] = None, **kwargs) -> Any:
        return self.request("POST", path, json=json if json is not None else {}, **kwargs)

    @staticmethod
    def _payload(response: requests.Response) -> Optional[Any]:
        try:
            return response.json()
        except ValueError:
            return None

    @staticmethod
    def _message(response: requests.Response, payload: Optional[Any]) -> str:
        if isinstance(payload, dict):
            message = payload.get("detail") or payload.get("message") or payload.get("error")
            if isinstance(message, str):
                return message
        return response.text or response.reason or str(response.status_code)

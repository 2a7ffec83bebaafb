"""
HTTP klient katalogu (náhrada services/api.ts z mobilní aplikace).

Používá requests.Session; každá ne-2xx odpověď končí ApiError se stavovým
kódem a hláškou serveru.
"""

import json
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000/api"
DEFAULT_TIMEOUT = 30


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


def iter_sse_data(lines: Iterable[str]) -> Iterable[Dict[str, Any]]:
    """Řádky text/event-stream -> JSON payloady z `data:` událostí."""
    buffer: List[str] = []
    for line in lines:
        if line == "":
            if buffer:
                yield _parse_event("\n".join(buffer))
                buffer = []
            continue
        if line.startswith("data:"):
            buffer.append(line[5:].lstrip())
    if buffer:
        yield _parse_event("\n".join(buffer))


def _parse_event(raw: str) -> Dict[str, Any]:
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Skipping malformed SSE event: %r", raw[:200])
        return {}


class CatalogApi:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        self.base_url = (base_url or os.getenv("API_URL") or DEFAULT_API_URL).rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def server_url(self) -> str:
        """Kořen serveru pro statické soubory (/images, /manuals)."""
        if self.base_url.endswith("/api"):
            return self.base_url[: -len("/api")]
        return self.base_url

    def absolute_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return f"{self.server_url}/{url.lstrip('/')}"

    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if auth:
            if not self.token:
                raise ApiError(401, "Authentication required")
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, auth: bool = False, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        resp = self.session.request(method, url, headers=self._headers(auth), timeout=self.timeout, **kwargs)
        if not resp.ok:
            raise ApiError(resp.status_code, _error_message(resp))
        if not resp.content:
            return None
        return resp.json()

    # ---------- produkty ----------

    def search(self, query: str, category: Optional[str] = None, limit: int = 10) -> List[Dict]:
        params = {"q": query, "limit": limit}
        if category:
            params["category"] = category
        return self._request("GET", "/products/search", params=params)

    def get_products(self, page: int = 1, limit: int = 10, **filters) -> Dict:
        params = {"page": page, "limit": limit}
        params.update({k: v for k, v in filters.items() if v is not None})
        return self._request("GET", "/products", params=params)

    def get_product(self, product_id: int) -> Dict:
        return self._request("GET", f"/products/{product_id}")

    def get_categories(self) -> List[Dict]:
        return self._request("GET", "/products/categories")

    # ---------- diskuze ----------

    def get_comments(self, product_id: int) -> List[Dict]:
        return self._request("GET", f"/products/{product_id}/comments")

    def get_replies(self, comment_id: int) -> List[Dict]:
        return self._request("GET", f"/comments/{comment_id}/replies")

    # ---------- účet ----------

    def signup(self, **fields) -> Dict:
        data = self._request("POST", "/auth/signup", json=fields)
        self.token = data["token"]
        return data

    def login(self, email: str, password: str) -> Dict:
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data

    def me(self) -> Dict:
        return self._request("GET", "/auth/me", auth=True)

    # ---------- uložené produkty ----------

    def get_saved_products(self) -> List[Dict]:
        return self._request("GET", "/saved-products", auth=True)

    def save_product(self, product_id: int) -> Dict:
        return self._request("POST", f"/saved-products/{product_id}", auth=True)

    def remove_saved_product(self, product_id: int) -> Dict:
        return self._request("DELETE", f"/saved-products/{product_id}", auth=True)

    def is_product_saved(self, product_id: int) -> bool:
        return bool(self._request("GET", f"/saved-products/check/{product_id}", auth=True)["is_saved"])

    # ---------- asistent ----------

    def chat(self, request: Dict[str, Any], on_chunk: Callable[[str], None]) -> str:
        """Pošle dotaz asistentovi a každý kus odpovědi předá do on_chunk; vrací celou odpověď."""
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        with self.session.post(
            f"{self.base_url}/assistant/chat",
            json=request,
            headers=headers,
            stream=True,
            timeout=self.timeout,
        ) as resp:
            if not resp.ok:
                raise ApiError(resp.status_code, _error_message(resp))

            parts = []
            lines = (line.decode("utf-8") for line in resp.iter_lines())
            for event in iter_sse_data(lines):
                if "error" in event:
                    raise ApiError(502, event["error"])
                content = event.get("content")
                if content:
                    parts.append(content)
                    on_chunk(content)
        return "".join(parts)


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason or "Request failed"
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or json.dumps(body)
    return str(body)

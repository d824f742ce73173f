from __future__ import annotations

from typing import Any

import requests

from .config import get_settings


class PostsApi:
    """Thin ``requests`` client for the /posts REST API."""

    def __init__(self, base_url: str | None = None, session: requests.Session | None = None, timeout: float = 10):
        self.base_url = (base_url or get_settings().feed_base_url).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _json(self, r: requests.Response) -> Any:
        r.raise_for_status()
        if r.status_code == 204 or not r.content:
            return None
        return r.json()

    def get_posts(self, page: int = 1, per_page: int = 15) -> dict:
        r = self.session.get(
            self._url("/posts"),
            params={"page": page, "per_page": per_page},
            timeout=self.timeout,
        )
        return self._json(r)

    def get_post(self, post_id: int | str) -> dict:
        r = self.session.get(self._url(f"/posts/{post_id}"), timeout=self.timeout)
        return self._json(r)

    def create_post(self, payload: dict) -> dict:
        r = self.session.post(self._url("/posts"), json=payload, timeout=self.timeout)
        return self._json(r)

    def update_post(self, post_id: int | str, payload: dict) -> dict:
        r = self.session.put(self._url(f"/posts/{post_id}"), json=payload, timeout=self.timeout)
        return self._json(r)

    def delete_post(self, post_id: int | str) -> None:
        r = self.session.delete(self._url(f"/posts/{post_id}"), timeout=self.timeout)
        self._json(r)

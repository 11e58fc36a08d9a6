"""Blocking HTTP helpers run on worker threads, mapped to ``FetchError``."""

from __future__ import annotations

import asyncio
from typing import Any

import certifi
import requests

from stockcrawler.errors import CrawlerErrorCode, FetchError

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept-Language": "zh-TW,zh;q=0.9,en;q=0.8",
}


class HttpClient:
    """Thin ``requests.Session`` wrapper with async entry points."""

    def __init__(
        self,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        source: str = "http",
    ) -> None:
        self.timeout = timeout
        self.source = source
        self.session = requests.Session()
        self.session.verify = certifi.where()
        self.session.headers.update(DEFAULT_HEADERS)
        if headers:
            self.session.headers.update(headers)

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        response = await asyncio.to_thread(self._get, url, params)
        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(
                f"{self.source}: response from {url} is not valid JSON: {exc}",
                code=CrawlerErrorCode.DECODE_FAILED,
                source=self.source,
            ) from exc

    async def get_text(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        encoding: str | None = None,
    ) -> str:
        response = await asyncio.to_thread(self._get, url, params)
        if encoding:
            response.encoding = encoding
        return response.text

    def close(self) -> None:
        self.session.close()

    def _get(self, url: str, params: dict[str, Any] | None) -> requests.Response:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            raise FetchError(
                f"{self.source}: timed out fetching {url}",
                code=CrawlerErrorCode.TIMEOUT,
                source=self.source,
            ) from exc
        except requests.RequestException as exc:
            raise FetchError(
                f"{self.source}: request to {url} failed: {exc}",
                source=self.source,
            ) from exc

        if response.status_code == 429:
            raise FetchError(
                f"{self.source}: rate limited by {url}",
                code=CrawlerErrorCode.RATE_LIMITED,
                source=self.source,
            )
        if response.status_code == 404:
            raise FetchError(
                f"{self.source}: {url} not found",
                code=CrawlerErrorCode.NOT_FOUND,
                source=self.source,
            )
        if response.status_code >= 400:
            raise FetchError(
                f"{self.source}: {url} returned HTTP {response.status_code}",
                source=self.source,
            )
        return response

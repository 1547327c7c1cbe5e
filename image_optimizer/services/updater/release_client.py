"""HTTP-клиент эндпоинта релизов.

Принципы:
- Повторы с экспоненциальной задержкой для временных сетевых сбоев.
- Транспортные ошибки -> `NetworkError`, некорректный ответ -> `ParseError`.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import requests

from image_optimizer.models.errors import NetworkError, ParseError
from image_optimizer.models.release_model import ReleaseInfo

logger = logging.getLogger(__name__)


def http_get(session, url, timeout=30, max_retries=3, backoff=1.5, stream=False, headers=None):
    attempt = 0
    while True:
        try:
            r = session.get(url, timeout=timeout, allow_redirects=True, stream=stream, headers=headers)
            r.raise_for_status()
            return r
        except requests.RequestException:
            attempt += 1
            if attempt >= max_retries:
                raise
            logger.debug("GET %s failed, retry %d/%d", url, attempt, max_retries)
            time.sleep(backoff ** attempt)


class ReleaseClient:
    def __init__(self, release_url: str, user_agent: str, timeout_seconds: int = 30,
                 max_retries: int = 3, session: Optional[requests.Session] = None) -> None:
        self.release_url = release_url
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self._session = session or requests.Session()
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}

    def fetch_latest(self) -> ReleaseInfo:
        try:
            r = http_get(self._session, self.release_url, timeout=self.timeout_seconds,
                         max_retries=self.max_retries, headers=self._headers)
        except requests.RequestException as exc:
            raise NetworkError(f"Не удалось получить сведения о релизе: {exc}") from exc
        try:
            payload = r.json()
        except ValueError as exc:
            raise ParseError(f"Ответ эндпоинта релизов не является JSON: {exc}") from exc
        return ReleaseInfo.from_json(payload)

    def download(self, url: str, target: Path) -> Path:
        """Скачивает файл потоково в `target`."""
        headers = {"User-Agent": self._headers["User-Agent"], "Accept": "application/octet-stream"}
        try:
            r = http_get(self._session, url, timeout=self.timeout_seconds,
                         max_retries=self.max_retries, stream=True, headers=headers)
            with target.open("wb") as f:
                for chunk in r.iter_content(chunk_size=1 << 15):
                    if chunk:
                        f.write(chunk)
        except requests.RequestException as exc:
            raise NetworkError(f"Не удалось скачать обновление: {exc}") from exc
        return target

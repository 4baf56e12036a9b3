from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

import httpx

from ..config import settings

MIN_SIGNED_TTL_SECONDS = 60
MAX_SIGNED_TTL_SECONDS = 60 * 60 * 24 * 7


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredObject:
    name: str
    size: Optional[int]
    updated_at: Optional[str]
    raw: dict[str, Any]


def normalize_path(path: str) -> str:
    return str(path or "").strip().lstrip("/")


def clamp_ttl(ttl_seconds: Optional[int]) -> int:
    ttl = int(ttl_seconds if ttl_seconds is not None else settings.storage_signed_url_ttl_seconds)
    return max(MIN_SIGNED_TTL_SECONDS, min(ttl, MAX_SIGNED_TTL_SECONDS))


class StorageClient:
    """
    Thin client for a bucket/object storage REST API
    (sign, batch sign, list, upload, remove).
    """

    def __init__(self, *, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.base = settings.storage_base_url.rstrip("/")
        self.key = settings.storage_service_key
        self._transport = transport

    def enabled(self) -> bool:
        return bool(self.key) or self._transport is not None

    def _headers(self) -> dict[str, str]:
        if not self.key:
            return {}
        return {"Authorization": f"Bearer {self.key}", "apikey": self.key}

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=20.0, transport=self._transport)

    def _absolute(self, signed: str) -> str:
        # the API answers with a path relative to the storage root
        if signed.startswith("http://") or signed.startswith("https://"):
            return signed
        return f"{self.base}/{signed.lstrip('/')}"

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            with self._client() as client:
                r = client.request(method, url, headers={**self._headers(), **kwargs.pop("headers", {})}, **kwargs)
                r.raise_for_status()
                return r.json() if r.content else None
        except httpx.HTTPStatusError as e:
            raise StorageError(f"storage {method} {url} failed: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StorageError(f"storage {method} {url} failed: {e}") from e

    def sign_path(self, bucket: str, path: str, ttl_seconds: Optional[int] = None) -> str:
        p = normalize_path(path)
        if not p:
            raise StorageError("path is required")
        data = self._request(
            "POST",
            f"{self.base}/object/sign/{bucket}/{p}",
            json={"expiresIn": clamp_ttl(ttl_seconds)},
        )
        signed = (data or {}).get("signedURL") or (data or {}).get("signedUrl")
        if not signed:
            raise StorageError(f"no signed url returned for {p}")
        return self._absolute(str(signed))

    def sign_paths(self, bucket: str, paths: Iterable[str], ttl_seconds: Optional[int] = None) -> dict[str, str]:
        """
        One request for the whole batch. Returns {path: signed_url};
        paths the API could not sign are left out.
        """
        normalized: list[str] = []
        for raw in paths:
            p = normalize_path(raw)
            if p and p not in normalized:
                normalized.append(p)
        if not normalized:
            return {}

        data = self._request(
            "POST",
            f"{self.base}/object/sign/{bucket}",
            json={"expiresIn": clamp_ttl(ttl_seconds), "paths": normalized},
        )

        out: dict[str, str] = {}
        for item in data or []:
            if not isinstance(item, dict) or item.get("error"):
                continue
            p = item.get("path")
            signed = item.get("signedURL") or item.get("signedUrl")
            if p and signed:
                out[str(p)] = self._absolute(str(signed))
        return out

    def list_objects(self, bucket: str, prefix: str = "", *, limit: int = 100, offset: int = 0) -> list[StoredObject]:
        data = self._request(
            "POST",
            f"{self.base}/object/list/{bucket}",
            json={"prefix": normalize_path(prefix), "limit": int(limit), "offset": int(offset)},
        )
        out: list[StoredObject] = []
        for item in data or []:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            meta = item.get("metadata") or {}
            out.append(
                StoredObject(
                    name=str(item["name"]),
                    size=meta.get("size") if isinstance(meta, dict) else None,
                    updated_at=item.get("updated_at"),
                    raw=item,
                )
            )
        return out

    def upload(self, bucket: str, path: str, content: bytes, *, content_type: str = "application/octet-stream") -> str:
        p = normalize_path(path)
        if not p:
            raise StorageError("path is required")
        self._request(
            "POST",
            f"{self.base}/object/{bucket}/{p}",
            content=content,
            headers={"Content-Type": content_type, "x-upsert": "true"},
        )
        return p

    def remove(self, bucket: str, paths: Iterable[str]) -> int:
        prefixes = [p for p in (normalize_path(x) for x in paths) if p]
        if not prefixes:
            return 0
        self._request("DELETE", f"{self.base}/object/{bucket}", json={"prefixes": prefixes})
        return len(prefixes)


def get_storage() -> StorageClient:
    return StorageClient()

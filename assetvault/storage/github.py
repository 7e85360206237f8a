"""Revision-hosted storage backend over the GitHub contents API.

Each logical path maps to a file on a branch of one repository. Writes are
commits; the blob SHA of a file is its fingerprint, and the API itself
rejects a write or delete whose SHA is stale, which is the compare-and-swap
point.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from assetvault.errors import BackendError, ConflictError, NotFoundError
from assetvault.storage.base import (
    ObjectEntry,
    Probe,
    StoredObject,
    check_delete_precondition,
    check_put_precondition,
    normalize_path,
)
from assetvault.storage.codec import decode_content, encode_content

if TYPE_CHECKING:
    from assetvault.config import GitHubStorageConfig

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


class GitHubContentsBackend:
    """Store objects as files in a GitHub repository branch."""

    def __init__(
        self,
        config: GitHubStorageConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._prefix = normalize_path(config.path_prefix)
        self._repo_path = f"/repos/{config.owner}/{config.repo}"
        self._client = client or httpx.AsyncClient(
            base_url=config.api_url,
            headers=self._headers(),
            timeout=config.timeout,
        )

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "Content-Type": "application/json",
        }
        if self._config.token:
            headers["Authorization"] = f"token {self._config.token}"
        return headers

    def _full_path(self, path: str) -> str:
        key = normalize_path(path)
        if self._prefix:
            return f"{self._prefix}/{key}" if key else self._prefix
        return key

    def _relative(self, full_path: str) -> str:
        if self._prefix and full_path.startswith(f"{self._prefix}/"):
            return full_path[len(self._prefix) + 1:]
        if full_path == self._prefix:
            return ""
        return full_path

    def _contents_url(self, path: str) -> str:
        return f"{self._repo_path}/contents/{quote(self._full_path(path), safe='/')}"

    async def probe(self, path: str) -> Probe:
        try:
            response = await self._request(
                "GET", self._contents_url(path), params={"ref": self._config.branch}
            )
        except BackendError as exc:
            return Probe.failed(exc)
        if response.status_code == 404:
            return Probe.absent()
        if not response.is_success:
            return Probe.failed(_backend_error(response, f"probe {path}"))
        body = response.json()
        if isinstance(body, list) or body.get("type") != "file":
            return Probe.failed(BackendError(f"{path} is not a file", status=response.status_code))
        return Probe.exists(body["sha"])

    async def put(
        self,
        path: str,
        data: bytes,
        expected_fingerprint: str | None = None,
        *,
        message: str | None = None,
    ) -> StoredObject:
        key = normalize_path(path)
        probe = await self.probe(key)
        check_put_precondition(key, probe, expected_fingerprint)

        body: dict[str, Any] = {
            "message": message or f"{'Update' if expected_fingerprint else 'Create'} {key}",
            "content": encode_content(data),
            "branch": self._config.branch,
        }
        if expected_fingerprint:
            body["sha"] = expected_fingerprint

        response = await self._request("PUT", self._contents_url(key), json=body)
        _raise_for_write_status(response, f"store {key}")

        result = response.json()
        content = result.get("content") or {}
        commit = result.get("commit") or {}
        logger.debug("Committed %s as %s", key, commit.get("sha"))
        return StoredObject(
            path=key,
            fingerprint=content["sha"],
            size=content.get("size", len(data)),
            revision=commit.get("sha"),
        )

    async def get(self, path: str) -> tuple[bytes, str]:
        key = normalize_path(path)
        response = await self._request(
            "GET", self._contents_url(key), params={"ref": self._config.branch}
        )
        if response.status_code == 404:
            raise NotFoundError(f"{key} not found")
        if not response.is_success:
            raise _backend_error(response, f"retrieve {key}")

        body = response.json()
        if isinstance(body, list) or body.get("type") != "file":
            raise BackendError(f"{key} is not a file", status=response.status_code)

        sha = body["sha"]
        if body.get("encoding") == "base64" and body.get("content") is not None:
            return decode_content(body["content"]), sha
        # Large files come back without inline content
        return await self._get_blob(key, sha), sha

    async def _get_blob(self, key: str, sha: str) -> bytes:
        response = await self._request("GET", f"{self._repo_path}/git/blobs/{sha}")
        if response.status_code == 404:
            raise NotFoundError(f"{key} blob {sha} not found")
        if not response.is_success:
            raise _backend_error(response, f"retrieve blob for {key}")
        return decode_content(response.json()["content"])

    async def delete(
        self,
        path: str,
        expected_fingerprint: str,
        *,
        message: str | None = None,
    ) -> None:
        key = normalize_path(path)
        probe = await self.probe(key) if expected_fingerprint else Probe.absent()
        check_delete_precondition(key, probe, expected_fingerprint)

        body = {
            "message": message or f"Delete {key}",
            "sha": expected_fingerprint,
            "branch": self._config.branch,
        }
        response = await self._request("DELETE", self._contents_url(key), json=body)
        if response.status_code == 404:
            raise NotFoundError(f"{key} not found")
        _raise_for_write_status(response, f"delete {key}")

    async def list(self, path: str = "") -> list[ObjectEntry]:
        key = normalize_path(path)
        response = await self._request(
            "GET", self._contents_url(key), params={"ref": self._config.branch}
        )
        if response.status_code == 404:
            raise NotFoundError(f"{key or '/'} not found")
        if not response.is_success:
            raise _backend_error(response, f"list {key or '/'}")

        body = response.json()
        items = body if isinstance(body, list) else [body]
        return [self._entry(item) for item in items]

    def _entry(self, item: dict) -> ObjectEntry:
        kind = item.get("type", "file")
        return ObjectEntry(
            name=item["name"],
            path=self._relative(item.get("path", item["name"])),
            kind="dir" if kind == "dir" else "file",
            fingerprint=item.get("sha"),
            size=item.get("size", 0),
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise BackendError(f"{method} {url} timed out", transient=True) from exc
        except httpx.TransportError as exc:
            raise BackendError(f"{method} {url} failed: {exc}", transient=True) from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or f"HTTP {response.status_code}"


def _backend_error(response: httpx.Response, action: str) -> BackendError:
    return BackendError(
        f"Failed to {action}: {_error_message(response)}",
        status=response.status_code,
        transient=response.status_code in TRANSIENT_STATUSES,
    )


def _raise_for_write_status(response: httpx.Response, action: str) -> None:
    """Map the remote's verdict on a SHA-guarded write."""
    if response.is_success:
        return
    message = _error_message(response)
    if response.status_code == 409:
        raise ConflictError(f"Failed to {action}: {message}")
    if response.status_code == 422 and "sha" in message.lower():
        raise ConflictError(f"Failed to {action}: {message}")
    raise _backend_error(response, action)

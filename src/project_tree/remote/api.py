"""HTTP client for the remote record collection."""

import json
import threading
from typing import Any

import requests
from loguru import logger

from project_tree.config import (
    API_TOKEN_FILES,
    REMOTE_BASE_URL,
    REMOTE_COLLECTION,
    REMOTE_PROJECT_ID,
    REMOTE_TIMEOUT,
)
from project_tree.errors import SyncError
from project_tree.models.node import RemoteRecord


def read_api_token() -> str:
    """Return the token from the first token file found."""
    for token_path in API_TOKEN_FILES:
        try:
            return token_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            pass
    msg = f"Cannot find remote API token file, was looking at {API_TOKEN_FILES!r}"
    raise SyncError(msg)


def parse_record(raw: dict[str, Any]) -> RemoteRecord:
    """Build a RemoteRecord from its wire shape ``{id, localId, data, lastModified}``."""
    data = raw.get("data") or {}
    if isinstance(data, str):
        data = json.loads(data)
    return RemoteRecord(
        remote_id=str(raw["id"]),
        local_id=str(raw.get("localId", "")),
        data=data,
        last_modified=int(raw.get("lastModified") or 0),
    )


class RecordApi:
    """Blocking client for one record collection (list, create, update)."""

    def __init__(
        self,
        *,
        project_id: str | None = None,
        token: str | None = None,
        base_url: str = REMOTE_BASE_URL,
        collection: str = REMOTE_COLLECTION,
        timeout: float = REMOTE_TIMEOUT,
    ) -> None:
        project_id = project_id or REMOTE_PROJECT_ID
        if not project_id:
            msg = "No remote project id configured (set PROJECT_TREE_REMOTE_PROJECT)"
            raise SyncError(msg)
        self.api_token = token if token is not None else read_api_token()
        self.url = f"{base_url.rstrip('/')}/account/{project_id}/db/{collection}"
        self.timeout = timeout
        self.sess = requests.Session()
        # requests.Session is not thread-safe; store calls arrive from worker threads.
        self._lock = threading.Lock()
        logger.debug("Remote API ready: {}", self.url)

    def call(self, method: str, path: str = "", body: dict[str, Any] | None = None) -> Any:
        """Invoke the API and return the decoded JSON (``{}`` for empty bodies)."""
        logger.debug("Making request: {} {}{}", method, self.url, path)
        try:
            with self._lock:
                r = self.sess.request(
                    method,
                    self.url + path,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_token}"},
                    timeout=self.timeout,
                )
        except requests.RequestException as e:
            msg = f"Remote request failed: {method} {path or '/'}: {e}"
            raise SyncError(msg) from e

        if not r.ok:
            msg = f"API request failed: {r.status_code} {r.reason} - {r.text[:200]}"
            raise SyncError(msg)
        if r.status_code == 204 or not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            msg = f"Remote returned invalid JSON for {method} {path or '/'}"
            raise SyncError(msg) from e

    def list_all(self) -> list[RemoteRecord]:
        rv = self.call("GET")
        rows = rv.get("data", []) if isinstance(rv, dict) else rv
        return [parse_record(row) for row in rows]

    def create(self, local_id: str, data: dict[str, Any], last_modified: int) -> RemoteRecord:
        body = {"localId": local_id, "data": data, "lastModified": last_modified}
        rv = self.call("POST", body=body)
        return self._record_from_response(rv, body)

    def update(
        self, remote_id: str, local_id: str, data: dict[str, Any], last_modified: int
    ) -> RemoteRecord:
        body = {"localId": local_id, "data": data, "lastModified": last_modified}
        rv = self.call("PATCH", f"/{remote_id}", body=body)
        return self._record_from_response(rv, {**body, "id": remote_id})

    @staticmethod
    def _record_from_response(rv: Any, sent: dict[str, Any]) -> RemoteRecord:
        raw = rv if isinstance(rv, dict) else {}
        envelope = raw.get("data")
        if "id" not in raw and isinstance(envelope, dict) and "localId" in envelope:
            raw = envelope
        merged = {**sent, **raw}
        if "id" not in merged:
            msg = f"Remote response carries no record id: {rv!r}"
            raise SyncError(msg)
        return parse_record(merged)

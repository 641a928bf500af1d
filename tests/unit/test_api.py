"""Tests for RecordApi, the HTTP client for remote records."""

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests

from project_tree.errors import SyncError
from project_tree.remote.api import RecordApi, parse_record


@pytest.fixture
def api_with_mock_session(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> tuple[RecordApi, MagicMock]:
    """Create a RecordApi with a real token file and mocked requests.Session."""
    token_file = tmp_path / "token.txt"
    token_file.write_text("test-token\n")
    monkeypatch.setattr("project_tree.remote.api.API_TOKEN_FILES", [token_file])

    with patch("project_tree.remote.api.requests.Session") as mock_session_cls:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        api = RecordApi(project_id="proj-1", base_url="https://example.test/")

    return api, mock_session


def _make_response(data: Any, status_code: int = 200) -> MagicMock:
    """Create a mock HTTP response with given JSON data."""
    response = MagicMock()
    response.ok = status_code < 400
    response.status_code = status_code
    response.reason = "OK" if response.ok else "Error"
    response.text = json.dumps(data)
    response.content = response.text.encode()
    response.json.return_value = data
    return response


def test_init_reads_token_from_first_found_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    token_file = tmp_path / "token.txt"
    token_file.write_text("my-secret-token\n")
    monkeypatch.setattr(
        "project_tree.remote.api.API_TOKEN_FILES",
        [tmp_path / "missing.txt", token_file],
    )

    with patch("project_tree.remote.api.requests.Session"):
        api = RecordApi(project_id="p")

    assert api.api_token == "my-secret-token"


def test_init_raises_when_no_token_file_exists(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        "project_tree.remote.api.API_TOKEN_FILES",
        [tmp_path / "a.txt", tmp_path / "b.txt"],
    )

    with pytest.raises(SyncError, match="Cannot find remote API token"):
        RecordApi(project_id="p")


def test_init_requires_project_id(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("project_tree.remote.api.REMOTE_PROJECT_ID", None)
    with pytest.raises(SyncError, match="No remote project id"):
        RecordApi(token="t")


def test_url_points_at_collection(api_with_mock_session: tuple[RecordApi, MagicMock]) -> None:
    api, _ = api_with_mock_session
    assert api.url == "https://example.test/account/proj-1/db/projects"


def test_call_sends_bearer_token(api_with_mock_session: tuple[RecordApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    mock_session.request.return_value = _make_response({"data": []})

    api.call("GET")

    args, kwargs = mock_session.request.call_args
    assert args == ("GET", api.url)
    assert kwargs["headers"]["Authorization"] == "Bearer test-token"


def test_concurrent_calls_share_session_one_at_a_time(
    api_with_mock_session: tuple[RecordApi, MagicMock],
) -> None:
    api, mock_session = api_with_mock_session
    active = 0
    overlap: list[int] = []
    guard = threading.Lock()

    def _request(*args: Any, **kwargs: Any) -> MagicMock:
        nonlocal active
        with guard:
            active += 1
            overlap.append(active)
        time.sleep(0.01)
        with guard:
            active -= 1
        return _make_response({"data": []})

    mock_session.request.side_effect = _request
    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda _: api.call("GET"), range(8)))

    assert mock_session.request.call_count == 8
    assert max(overlap) == 1


def test_call_raises_on_http_error(api_with_mock_session: tuple[RecordApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    mock_session.request.return_value = _make_response({"error": "nope"}, 500)

    with pytest.raises(SyncError, match="500"):
        api.call("GET")


def test_call_wraps_connection_errors(
    api_with_mock_session: tuple[RecordApi, MagicMock],
) -> None:
    api, mock_session = api_with_mock_session
    mock_session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(SyncError, match="refused"):
        api.call("GET")


def test_call_returns_empty_dict_for_no_content(
    api_with_mock_session: tuple[RecordApi, MagicMock],
) -> None:
    api, mock_session = api_with_mock_session
    response = _make_response({}, 204)
    response.content = b""
    mock_session.request.return_value = response

    assert api.call("PATCH", "/r1", {}) == {}


def test_call_rejects_invalid_json(api_with_mock_session: tuple[RecordApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    response = _make_response({})
    response.json.side_effect = ValueError("bad json")
    mock_session.request.return_value = response

    with pytest.raises(SyncError, match="invalid JSON"):
        api.call("GET")


def test_list_all_unwraps_data_envelope(
    api_with_mock_session: tuple[RecordApi, MagicMock],
) -> None:
    api, mock_session = api_with_mock_session
    mock_session.request.return_value = _make_response(
        {
            "data": [
                {"id": "r1", "localId": "p1", "data": {"name": "A"}, "lastModified": 10},
                {"id": "r2", "localId": "p2", "data": '{"name": "B"}', "lastModified": 20},
            ]
        }
    )

    records = api.list_all()

    assert [r.remote_id for r in records] == ["r1", "r2"]
    assert records[1].data == {"name": "B"}
    assert records[1].last_modified == 20


def test_list_all_accepts_bare_list(api_with_mock_session: tuple[RecordApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    mock_session.request.return_value = _make_response(
        [{"id": "r1", "localId": "p1", "data": {}, "lastModified": 1}]
    )
    assert len(api.list_all()) == 1


def test_create_posts_record(api_with_mock_session: tuple[RecordApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    mock_session.request.return_value = _make_response({"data": {"id": "r9", "localId": "p1"}})

    record = api.create("p1", {"name": "A"}, 42)

    args, kwargs = mock_session.request.call_args
    assert args == ("POST", api.url)
    assert kwargs["json"] == {"localId": "p1", "data": {"name": "A"}, "lastModified": 42}
    assert record.remote_id == "r9"
    assert record.data == {"name": "A"}
    assert record.last_modified == 42


def test_create_without_id_in_response_raises(
    api_with_mock_session: tuple[RecordApi, MagicMock],
) -> None:
    api, mock_session = api_with_mock_session
    mock_session.request.return_value = _make_response({"status": "ok"})

    with pytest.raises(SyncError, match="no record id"):
        api.create("p1", {}, 1)


def test_update_patches_record_by_id(api_with_mock_session: tuple[RecordApi, MagicMock]) -> None:
    api, mock_session = api_with_mock_session
    response = _make_response({}, 204)
    response.content = b""
    mock_session.request.return_value = response

    record = api.update("r1", "p1", {"name": "B"}, 99)

    args, _ = mock_session.request.call_args
    assert args == ("PATCH", api.url + "/r1")
    assert record.remote_id == "r1"
    assert record.local_id == "p1"
    assert record.last_modified == 99


def test_parse_record_defaults() -> None:
    record = parse_record({"id": 7})
    assert record.remote_id == "7"
    assert record.local_id == ""
    assert record.data == {}
    assert record.last_modified == 0

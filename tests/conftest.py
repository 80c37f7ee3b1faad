"""Shared pytest fixtures for the Gemini files client tests.

Provides a test configuration, a small tree of local files, and an
in-memory fake of the Files API served through ``httpx.MockTransport``,
so no test touches the real network.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import httpx
import pytest

from geminiai.client import GeminiClient
from geminiai.config import ClientConfig

BASE_URL = "https://gemini.test"
UPLOAD_HOST = "upload.gemini.test"


class FakeFileService:
    """In-memory stand-in for the Gemini Files API.

    Speaks the resumable upload handshake plus get/list/delete.  Knobs let
    tests bend the protocol:

    * ``upload_url_headers`` -- override the ``X-Goog-Upload-URL`` values
      returned by ``start`` (``[]`` for none, two entries for duplicates).
    * ``initiate_status`` -- status code for ``start`` requests.
    * ``transfer_status`` -- per display name status for the byte transfer.
    * ``transfer_body`` -- per display name replacement JSON body.
    * ``delays`` -- per display name seconds to sleep before answering the
      transfer, to shuffle completion order.
    * ``file_states`` -- queue of states reported by successive GETs.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.files: dict[str, dict] = {}
        self._sessions: dict[str, dict] = {}
        self._next_id = 0

        self.upload_url_headers: list[str] | None = None
        self.initiate_status = 200
        self.transfer_status: dict[str, int] = {}
        self.transfer_body: dict[str, object] = {}
        self.delays: dict[str, float] = {}
        self.file_states: list[str] = []

    # ------------------------------------------------------------------
    # Inspection helpers
    # ------------------------------------------------------------------

    @property
    def initiate_requests(self) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.host != UPLOAD_HOST and r.url.path.startswith("/upload/")
        ]

    @property
    def transfer_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == UPLOAD_HOST]

    def add_file(self, file_id: str, **fields: object) -> dict:
        resource = {
            "name": f"files/{file_id}",
            "displayName": f"{file_id}.txt",
            "mimeType": "text/plain",
            "sizeBytes": "10",
            "createTime": "2024-06-01T10:00:00.000000Z",
            "updateTime": "2024-06-01T10:00:00.000000Z",
            "expirationTime": "2024-06-03T10:00:00.000000Z",
            "sha256Hash": "ZmFrZS1oYXNo",
            "uri": f"{BASE_URL}/v1beta/files/{file_id}",
            "state": "ACTIVE",
        }
        resource.update(fields)
        self.files[resource["name"]] = resource
        return resource

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == UPLOAD_HOST:
            return await self._transfer(request)

        path = request.url.path
        if request.method == "POST" and path == "/upload/v1beta/files":
            return self._initiate(request)
        if request.method == "GET" and path == "/v1beta/files":
            return self._list(request)
        if path.startswith("/v1beta/files/"):
            name = path[len("/v1beta/"):]
            if request.method == "GET":
                return self._get(name)
            if request.method == "DELETE":
                return self._delete(name)
        return httpx.Response(404, json={"error": {"code": 404, "message": "no route"}})

    def _initiate(self, request: httpx.Request) -> httpx.Response:
        if self.initiate_status != 200:
            return httpx.Response(
                self.initiate_status,
                json={"error": {"code": self.initiate_status, "message": "rejected"}},
            )

        self._next_id += 1
        file_id = f"f{self._next_id:04d}"
        metadata = json.loads(request.content)
        self._sessions[file_id] = {
            "display_name": metadata["file"]["display_name"],
            "mime_type": request.headers["X-Goog-Upload-Header-Content-Type"],
            "declared_size": int(request.headers["X-Goog-Upload-Header-Content-Length"]),
        }

        if self.upload_url_headers is None:
            urls = [f"https://{UPLOAD_HOST}/upload/v1beta/files?upload_id={file_id}"]
        else:
            urls = self.upload_url_headers
        headers = [("X-Goog-Upload-URL", url) for url in urls]
        headers.append(("X-Goog-Upload-Status", "active"))
        return httpx.Response(200, headers=headers)

    async def _transfer(self, request: httpx.Request) -> httpx.Response:
        file_id = request.url.params.get("upload_id")
        session = self._sessions.pop(file_id, None)
        if session is None:
            return httpx.Response(404, json={"error": {"code": 404, "message": "unknown upload"}})

        display_name = session["display_name"]
        delay = self.delays.get(display_name)
        if delay:
            await asyncio.sleep(delay)

        status = self.transfer_status.get(display_name, 200)
        if status != 200:
            return httpx.Response(status, json={"error": {"code": status, "message": "failed"}})
        if display_name in self.transfer_body:
            return httpx.Response(200, json=self.transfer_body[display_name])

        resource = self.add_file(
            file_id,
            displayName=display_name,
            mimeType=session["mime_type"],
            sizeBytes=str(len(request.content)),
            state="PROCESSING",
        )
        return httpx.Response(200, json={"file": resource})

    def _get(self, name: str) -> httpx.Response:
        resource = self.files.get(name)
        if resource is None:
            return httpx.Response(404, json={"error": {"code": 404, "message": "not found"}})
        if self.file_states:
            resource = {**resource, "state": self.file_states.pop(0)}
        return httpx.Response(200, json=resource)

    def _list(self, request: httpx.Request) -> httpx.Response:
        names = sorted(self.files)
        size = int(request.url.params.get("pageSize", len(names) or 1))
        start = int(request.url.params.get("pageToken", 0))
        page = names[start : start + size]
        body: dict = {}
        if page:
            body["files"] = [self.files[n] for n in page]
        if start + size < len(names):
            body["nextPageToken"] = str(start + size)
        return httpx.Response(200, json=body)

    def _delete(self, name: str) -> httpx.Response:
        if self.files.pop(name, None) is None:
            return httpx.Response(404, json={"error": {"code": 404, "message": "not found"}})
        return httpx.Response(200, json={})


@pytest.fixture
def config() -> ClientConfig:
    """Test configuration with retries disabled."""
    return ClientConfig(api_key="test-key", base_url=BASE_URL, max_retries=0)


@pytest.fixture
def service() -> FakeFileService:
    return FakeFileService()


@pytest.fixture
async def client(config: ClientConfig, service: FakeFileService):
    """GeminiClient wired to the fake service."""
    gemini = GeminiClient(config, http_transport=httpx.MockTransport(service))
    yield gemini
    await gemini.close()


@pytest.fixture
def sample_files(tmp_path: Path) -> dict[str, Path]:
    """A few local files of distinct types and sizes."""
    files = {
        "report.pdf": b"%PDF-1.4\n" + b"0" * 2048,
        "notes.txt": b"Lecture notes.\n" * 40,
        "clip.ogg": b"OggS" + b"\x00" * 512,
        "empty.bin": b"",
    }
    paths = {}
    for name, content in files.items():
        path = tmp_path / name
        path.write_bytes(content)
        paths[name] = path
    return paths


@pytest.fixture
def file_payload() -> dict:
    """A file object as the service returns it."""
    return {
        "name": "files/abc-123",
        "displayName": "report.pdf",
        "mimeType": "application/pdf",
        "sizeBytes": "12345",
        "createTime": "2024-06-01T10:00:00.000000Z",
        "updateTime": "2024-06-01T10:00:01.000000Z",
        "expirationTime": "2024-06-03T10:00:00.000000Z",
        "sha256Hash": "NjM4ZGFhZWQ3YzE1",
        "uri": "https://generativelanguage.googleapis.com/v1beta/files/abc-123",
        "state": "ACTIVE",
    }

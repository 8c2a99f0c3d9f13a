import json
import sys
from pathlib import Path

import httpx
import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `editor.*`, `remote.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

from remote.client import PolygonServiceClient  # noqa: E402


SQUARE_WKT = "POLYGON ((0 0, 2 0, 2 2, 0 2, 0 0))"


class FakePolygonService:
    """
    In-process stand-in for the polygon service, served through
    `httpx.MockTransport`. Records every request it sees.
    """

    def __init__(self):
        self.polygons: list[dict] = []
        self.layers: list[dict] = []
        self.read_only: dict = {"type": "FeatureCollection", "features": []}
        self.calls: list[tuple[str, str, dict | None]] = []
        # (method, path) -> status code to fail with
        self.failures: dict[tuple[str, str], int] = {}
        self._next_id = 1000

    def add_polygon(self, pid: int, layer_id: int, *, geom: str = SQUARE_WKT, title: str = ""):
        self.polygons.append(
            {
                "id": pid,
                "geom": geom,
                "title": title or f"poly {pid}",
                "description": "",
                "layer_id": layer_id,
            }
        )

    def calls_to(self, method: str, prefix: str) -> list[tuple[str, str, dict | None]]:
        return [c for c in self.calls if c[0] == method and c[1].startswith(prefix)]

    def client(self) -> PolygonServiceClient:
        return PolygonServiceClient(
            "http://polygons.test",
            timeout_s=5.0,
            transport=httpx.MockTransport(self.handler),
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append((method, path, body))

        status = self.failures.get((method, path))
        if status is not None:
            return httpx.Response(status, text="boom")

        if method == "GET" and path == "/polygons/":
            return httpx.Response(200, json=self.polygons)
        if method == "GET" and path == "/pgs_by_layer/":
            lid = int(request.url.params["layer_id"])
            return httpx.Response(
                200, json=[p for p in self.polygons if p["layer_id"] == lid]
            )
        if method == "GET" and path == "/layers":
            return httpx.Response(200, json=self.layers)
        if method == "GET" and path == "/public/ro.json":
            return httpx.Response(200, json=self.read_only)
        if method == "POST" and path == "/polygon/create":
            self._next_id += 1
            return httpx.Response(200, json={**body, "id": self._next_id})
        if method == "POST" and path == "/polygon/update":
            return httpx.Response(200, json=body)
        if method == "DELETE" and path.startswith("/polygon/delete/"):
            return httpx.Response(204)
        return httpx.Response(404, text="not found")


@pytest.fixture
def service() -> FakePolygonService:
    return FakePolygonService()


@pytest.fixture(autouse=True)
def _telemetry_off_by_default(monkeypatch):
    # Tests that exercise telemetry turn it back on with their own path.
    monkeypatch.setenv("POLYSYNC_TELEMETRY", "0")

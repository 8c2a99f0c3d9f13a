from __future__ import annotations

import logging
from typing import Any

import httpx

import settings
from geo.codec import GeometryEncoding, encode_rings
from layers.types import Rings
from remote.errors import RemoteError

logger = logging.getLogger(__name__)


class PolygonServiceClient:
    """
    JSON-over-HTTP client for the polygon persistence service.

    Every call either returns the decoded response or raises `RemoteError`.
    There are no retries; a failed call is reported once and left to the caller.

    Used as an async context manager the client keeps one connection pool for
    the whole block; otherwise each call opens (and closes) its own.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout_s: float | None = None,
        geometry_encoding: GeometryEncoding | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.remote_url()).rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else settings.remote_timeout_s()
        self.geometry_encoding = geometry_encoding or settings.geometry_encoding()
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "PolygonServiceClient":
        if self._http is None:
            self._http = self._new_http()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    # --- CRUD -----------------------------------------------------------

    async def create_polygon(
        self,
        *,
        title: str,
        description: str,
        rings: Rings,
        layer_id: int | None,
    ) -> Any:
        # No id: the service assigns one.
        body = {
            "title": title,
            "description": description,
            "geojson": encode_rings(rings, self.geometry_encoding),
            "layer_id": layer_id,
        }
        return await self._request("POST", "/polygon/create", json=body)

    async def update_polygon(
        self,
        *,
        polygon_id: int,
        title: str,
        description: str,
        rings: Rings,
        layer_id: int | None,
    ) -> Any:
        body = {
            "id": polygon_id,
            "title": title,
            "description": description,
            "geom": encode_rings(rings, self.geometry_encoding),
            "layer_id": layer_id,
        }
        return await self._request("POST", "/polygon/update", json=body)

    async def delete_polygon(self, polygon_id: int) -> None:
        await self._request("DELETE", f"/polygon/delete/{polygon_id}", decode=False)

    # --- Listing --------------------------------------------------------

    async def list_polygons(self) -> list[dict[str, Any]]:
        return _as_records(await self._request("GET", "/polygons/"), "/polygons/")

    async def list_polygons_by_layer(self, layer_id: int) -> list[dict[str, Any]]:
        data = await self._request(
            "GET", "/pgs_by_layer/", params={"layer_id": layer_id}
        )
        return _as_records(data, "/pgs_by_layer/")

    async def list_layers(self) -> list[dict[str, Any]]:
        return _as_records(await self._request("GET", "/layers"), "/layers")

    async def get_read_only_dataset(self, path: str | None = None) -> dict[str, Any]:
        p = path or settings.read_only_path()
        data = await self._request("GET", p)
        if not isinstance(data, dict):
            raise RemoteError(None, f"Expected a GeoJSON object from {p}", url=p)
        return data

    # --- Transport ------------------------------------------------------

    def _new_http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_s),
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        decode: bool = True,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            if self._http is not None:
                resp = await self._http.request(method, path, json=json, params=params)
            else:
                async with self._new_http() as http:
                    resp = await http.request(method, path, json=json, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            text = e.response.text or e.response.reason_phrase
            logger.warning("%s %s failed: %s %s", method, url, status, text)
            raise RemoteError(status, text, url=url) from e
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise RemoteError(None, f"{type(e).__name__}: {e}", url=url) from e

        if not decode or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteError(resp.status_code, "Response is not valid JSON", url=url) from e


def _as_records(data: Any, path: str) -> list[dict[str, Any]]:
    if not isinstance(data, list):
        raise RemoteError(None, f"Expected a JSON array from {path}", url=path)
    return [r for r in data if isinstance(r, dict)]

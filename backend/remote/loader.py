from __future__ import annotations

import logging
import threading

from editor.commands import (
    FeaturesFetched,
    LayerCatalogFetched,
    RemoteCallFailed,
    RemoteCallStarted,
)
from editor.session import EditorSession
from editor.types import EditorState, ErrorStatus
from layers.loaders import features_from_records, layer_catalog_from_records
from layers.readonly import build_read_only_dataset
from layers.types import ReadOnlyDataset
from remote.client import PolygonServiceClient
from remote.errors import RemoteError

logger = logging.getLogger(__name__)


class RemoteLoader:
    """
    Fetches features and layer metadata and merges them into a session.

    Failures never propagate: they are logged and recorded as the session's
    error status, which is what the UI shows.
    """

    def __init__(self, session: EditorSession, client: PolygonServiceClient):
        self.session = session
        self.client = client
        self._in_flight: set[int] = set()
        self._lock = threading.Lock()

    async def fetch_all_features(self) -> EditorState:
        self.session.dispatch(RemoteCallStarted(operation="list_polygons"))
        try:
            records = await self.client.list_polygons()
        except RemoteError as e:
            return self._failed("list_polygons", e)
        features = features_from_records(records)
        logger.info("Fetched %d polygons", len(features))
        return self.session.dispatch(FeaturesFetched(features=tuple(features)))

    async def fetch_layer_metadata(self) -> EditorState:
        self.session.dispatch(RemoteCallStarted(operation="list_layers"))
        try:
            records = await self.client.list_layers()
        except RemoteError as e:
            return self._failed("list_layers", e)
        layers = layer_catalog_from_records(records)
        logger.info("Fetched %d layers", len(layers))
        return self.session.dispatch(LayerCatalogFetched(layers=tuple(layers)))

    async def fetch_features_for_layer(self, layer_id: int) -> EditorState:
        """
        Load one layer's polygons, at most once per session.

        A layer that is already loaded, or whose fetch is still running,
        costs no network call.
        """
        layer_id = int(layer_id)
        with self._lock:
            if layer_id in self.session.state.loaded_layers or layer_id in self._in_flight:
                return self.session.state
            self._in_flight.add(layer_id)
        try:
            self.session.dispatch(RemoteCallStarted(operation="list_polygons_by_layer"))
            try:
                records = await self.client.list_polygons_by_layer(layer_id)
            except RemoteError as e:
                return self._failed("list_polygons_by_layer", e)
            features = features_from_records(records, layer_id=layer_id)
            logger.info("Fetched %d polygons for layer %s", len(features), layer_id)
            return self.session.dispatch(
                FeaturesFetched(features=tuple(features), layer_id=layer_id)
            )
        finally:
            with self._lock:
                self._in_flight.discard(layer_id)

    async def fetch_read_only_dataset(self) -> ReadOnlyDataset | None:
        """
        Display-only data path: the result is returned, never merged.
        """
        try:
            data = await self.client.get_read_only_dataset()
        except RemoteError as e:
            logger.warning("Read-only dataset unavailable: %s", e.message)
            self.session.dispatch(RemoteCallFailed(error=ErrorStatus.from_error(e)))
            return None
        return build_read_only_dataset(data)

    def _failed(self, operation: str, e: RemoteError) -> EditorState:
        logger.warning("%s failed: status=%s %s", operation, e.status, e.message)
        return self.session.dispatch(RemoteCallFailed(error=ErrorStatus.from_error(e)))

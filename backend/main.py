from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

import settings
from editor.commands import ClientCommand
from editor.projection import project_read_only, project_state
from editor.session import EditorSession, LoggingObserver
from logger_setup import configure_logging
from remote.client import PolygonServiceClient
from remote.loader import RemoteLoader
from sync.coordinator import save
from telemetry.singleton import TelemetryObserver, get_store, reset_store

configure_logging()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_session() -> EditorSession:
    return EditorSession(observers=[LoggingObserver(), TelemetryObserver()])


@lru_cache(maxsize=1)
def get_client() -> PolygonServiceClient:
    return PolygonServiceClient()


_loaders: dict[tuple[int, int], RemoteLoader] = {}


def _bounded_cache_put(cache: dict, key, value, *, max_items: int) -> None:
    cache[key] = value
    if len(cache) > max_items:
        oldest = next(iter(cache.keys()))
        if oldest != key:
            cache.pop(oldest, None)


def get_loader(
    session: EditorSession = Depends(get_session),
    client: PolygonServiceClient = Depends(get_client),
) -> RemoteLoader:
    # One loader per (session, client): it tracks in-flight layer fetches.
    key = (id(session), id(client))
    loader = _loaders.get(key)
    if loader is None or loader.session is not session or loader.client is not client:
        loader = RemoteLoader(session, client)
        _bounded_cache_put(_loaders, key, loader, max_items=8)
    return loader


class ApiSaveResult(BaseModel):
    saved: bool
    created: int
    updated: int
    deleted: int
    skipped: int
    errors: list[dict]
    state: dict


@app.get("/state")
def get_state(session: EditorSession = Depends(get_session)):
    return project_state(session.state)


@app.post("/commands")
def post_command(
    command: ClientCommand, session: EditorSession = Depends(get_session)
):
    try:
        state = session.dispatch(command)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return project_state(state)


@app.post("/layers/metadata/load")
async def load_layer_metadata(loader: RemoteLoader = Depends(get_loader)):
    return project_state(await loader.fetch_layer_metadata())


@app.post("/layers/{layer_id}/load")
async def load_layer(layer_id: int, loader: RemoteLoader = Depends(get_loader)):
    return project_state(await loader.fetch_features_for_layer(layer_id))


@app.post("/features/load")
async def load_all_features(loader: RemoteLoader = Depends(get_loader)):
    return project_state(await loader.fetch_all_features())


@app.get("/read-only")
async def get_read_only(loader: RemoteLoader = Depends(get_loader)):
    dataset = await loader.fetch_read_only_dataset()
    if dataset is None:
        err = loader.session.state.error
        raise HTTPException(
            status_code=502,
            detail=err.message if err is not None else "Read-only dataset unavailable",
        )
    return project_read_only(dataset)


@app.post("/save", response_model=ApiSaveResult)
async def post_save(
    session: EditorSession = Depends(get_session),
    client: PolygonServiceClient = Depends(get_client),
):
    result = await save(session, client)
    return ApiSaveResult(
        saved=result.saved,
        created=result.created,
        updated=result.updated,
        deleted=result.deleted,
        skipped=result.skipped,
        errors=[e.to_dict() for e in result.errors],
        state=project_state(session.state),
    )


@app.get("/telemetry/actions/summary")
def telemetry_summary(action: str | None = None, since_ms: int | None = None):
    store = get_store()
    if store is None:
        return []
    store.flush(timeout_s=2.0)
    return store.summary(action=action, since_ms=since_ms)


@app.post("/telemetry/reset")
def telemetry_reset():
    reset_store()
    return {"ok": True}

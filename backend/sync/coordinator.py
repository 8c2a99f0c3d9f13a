from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable

from editor.commands import RemoteCallFailed, RemoteCallStarted, SaveSucceeded
from editor.session import EditorSession
from editor.types import ErrorStatus
from layers.types import Draft, Persisted
from remote.client import PolygonServiceClient
from remote.errors import RemoteError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    saved: bool
    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    errors: list[RemoteError] = field(default_factory=list)
    # Raw create responses; they carry the server ids the local state does not get.
    created_records: list[Any] = field(default_factory=list)


async def save(session: EditorSession, client: PolygonServiceClient) -> SyncResult:
    """
    Push the active features and pending deletions to the polygon service.

    Persisted features are updated, drafts are created, persisted deletions
    are deleted. All calls run concurrently and are joined; only if every one
    of them succeeded is the cycle confirmed with a single `save_succeeded`.

    Nothing is rolled back on failure, and server-assigned ids of created
    polygons are not written back (a reload brings them in).
    """
    state = session.state
    session.dispatch(RemoteCallStarted(operation="save"))

    creates: list[Awaitable[Any]] = []
    updates: list[Awaitable[Any]] = []
    deletes: list[Awaitable[Any]] = []
    skipped = 0

    for f in state.features:
        if f.properties is None:
            # Still waiting on its details form; nothing meaningful to send.
            logger.info("Not saving feature %s: no title/description/layer yet", f.id)
            skipped += 1
            continue
        if isinstance(f.key, Persisted):
            updates.append(
                client.update_polygon(
                    polygon_id=f.key.server_id,
                    title=f.properties.title,
                    description=f.properties.description,
                    rings=f.rings,
                    layer_id=f.layer_id,
                )
            )
        else:
            creates.append(
                client.create_polygon(
                    title=f.properties.title,
                    description=f.properties.description,
                    rings=f.rings,
                    layer_id=f.layer_id,
                )
            )

    for key in state.deleted:
        if isinstance(key, Draft):
            # Never left this editor; reconciled locally.
            continue
        deletes.append(client.delete_polygon(key.server_id))

    calls = [*creates, *updates, *deletes]
    results = await asyncio.gather(*calls, return_exceptions=True)

    errors: list[RemoteError] = []
    for r in results:
        if isinstance(r, RemoteError):
            errors.append(r)
        elif isinstance(r, BaseException):
            if not isinstance(r, Exception):
                raise r
            errors.append(RemoteError(None, f"{type(r).__name__}: {r}"))

    if errors:
        for e in errors:
            logger.error("Save call failed: status=%s url=%s %s", e.status, e.url, e.message)
        logger.error("Save failed: %d of %d calls failed", len(errors), len(calls))
        session.dispatch(
            RemoteCallFailed(error=ErrorStatus.from_error(errors[0]), failures=len(errors))
        )
        return SyncResult(
            saved=False,
            created=len(creates),
            updated=len(updates),
            deleted=len(deletes),
            skipped=skipped,
            errors=errors,
        )

    session.dispatch(
        SaveSucceeded(
            created=len(creates),
            updated=len(updates),
            deleted=len(deletes),
            reconciled=state.deleted,
        )
    )
    logger.info(
        "Saved: %d created, %d updated, %d deleted",
        len(creates),
        len(updates),
        len(deletes),
    )
    return SyncResult(
        saved=True,
        created=len(creates),
        updated=len(updates),
        deleted=len(deletes),
        skipped=skipped,
        created_records=list(results[: len(creates)]),
    )

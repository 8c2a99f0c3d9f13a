from __future__ import annotations

import logging
import threading
import time
from typing import Iterable, Protocol

from editor.commands import Command, command_summary, reduce
from editor.types import EditorState

logger = logging.getLogger(__name__)


class ActionObserver(Protocol):
    def on_action(
        self,
        command: Command,
        before: EditorState,
        after: EditorState,
        duration_ms: float,
    ) -> None: ...


class LoggingObserver:
    """Logs every applied command at DEBUG level."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def on_action(
        self,
        command: Command,
        before: EditorState,
        after: EditorState,
        duration_ms: float,
    ) -> None:
        if not self._log.isEnabledFor(logging.DEBUG):
            return
        self._log.debug(
            "action=%s changed=%s features=%d loaded=%d deleted=%d took=%.2fms payload=%s",
            command.action,
            before is not after,
            len(after.features),
            len(after.loaded_features),
            len(after.deleted),
            duration_ms,
            command_summary(command),
        )


class EditorSession:
    """
    Single owner of the editor state.

    Every command goes through `dispatch`, which applies it under one lock:
    a command is fully applied (and observed) before the next one starts,
    whether it comes from a request thread or from a network callback.
    """

    def __init__(
        self,
        state: EditorState | None = None,
        *,
        observers: Iterable[ActionObserver] = (),
    ):
        self._state = state if state is not None else EditorState()
        self._observers: list[ActionObserver] = list(observers)
        self._lock = threading.RLock()

    @property
    def state(self) -> EditorState:
        return self._state

    def add_observer(self, observer: ActionObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    def dispatch(self, command: Command) -> EditorState:
        with self._lock:
            before = self._state
            t0 = time.perf_counter()
            after = reduce(before, command)
            duration_ms = (time.perf_counter() - t0) * 1000.0
            self._state = after
            for observer in self._observers:
                try:
                    observer.on_action(command, before, after, duration_ms)
                except Exception:
                    logger.exception(
                        "Observer %r failed on action %s", observer, command.action
                    )
            return after

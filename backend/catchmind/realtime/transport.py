from __future__ import annotations

from typing import Any, Callable

from flask_socketio import SocketIO


class SocketIOBroadcaster:
    """Room/team fan-out on top of Socket.IO rooms.

    Works outside a request context, so deferred callbacks can emit too.
    """

    def __init__(self, socketio: SocketIO, namespace: str = "/"):
        self.socketio = socketio
        self.namespace = namespace

    def emit(self, event: str, payload: Any = None, to: str | None = None, skip: str | None = None) -> None:
        args = () if payload is None else (payload,)
        self.socketio.emit(event, *args, to=to, skip_sid=skip, namespace=self.namespace)

    def join(self, identity: str, group: str) -> None:
        self.socketio.server.enter_room(identity, group, namespace=self.namespace)

    def leave(self, identity: str, group: str) -> None:
        self.socketio.server.leave_room(identity, group, namespace=self.namespace)


class SocketIOScheduler:
    """One-shot deferred calls on the server's async backend."""

    def __init__(self, socketio: SocketIO):
        self.socketio = socketio

    def call_later(self, delay_sec: float, fn: Callable[[], None]) -> None:
        def _runner() -> None:
            if delay_sec > 0:
                self.socketio.sleep(delay_sec)
            fn()

        self.socketio.start_background_task(_runner)

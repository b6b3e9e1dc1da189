from typing import Any

from ballpark import socketio

NAMESPACE = '/'


class SocketIOBroadcaster:
    """Fan out game events over Socket.IO.

    Uses ``socketio.emit`` rather than flask_socketio's ``emit`` so it also
    works from background tasks, which have no request context.
    """

    def __init__(self, namespace: str = NAMESPACE):
        self.namespace = namespace

    def broadcast(self, event: str, payload: Any) -> None:
        socketio.emit(event, payload, namespace=self.namespace)

    def send(self, sid: str, event: str, payload: Any) -> None:
        socketio.emit(event, payload, to=sid, namespace=self.namespace)

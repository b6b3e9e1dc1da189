from flask import current_app, request
from flask_socketio import emit
from typing import Any, Dict

from ballpark import socketio
from ballpark.broadcast import NAMESPACE
from ballpark.game import get_game
from ballpark.models import Human


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _payload(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


def handle_connect(auth=None):
    current_app.logger.info(f"[connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    current_app.logger.info(f"[disconnect] sid={sid} reason={reason}")
    get_game().leave(sid)


def handle_join(data):
    name = _payload(data).get('name')
    if not isinstance(name, str) or not name.strip():
        emit('error', {'message': 'name is required'})
        return
    get_game().join(_get_sid(), name.strip())


def handle_chat(message):
    get_game().chat(_get_sid(), message)


def handle_select_pitch(data):
    get_game().select_pitch(Human(_get_sid()), _payload(data).get('type'))


def handle_pitch_timing(data):
    data = _payload(data)
    get_game().pitch_timing(Human(_get_sid()), data.get('timings'), data.get('flashSequence'))


def handle_swing_timing(data):
    data = _payload(data)
    get_game().swing_timing(Human(_get_sid()), data.get('timings'), data.get('flashSequence'))


def handle_move(data):
    get_game().move(_get_sid(), _payload(data).get('direction'))


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join', handle_join, namespace=namespace)
    socketio.on_event('chat', handle_chat, namespace=namespace)
    socketio.on_event('selectPitch', handle_select_pitch, namespace=namespace)
    socketio.on_event('pitchTiming', handle_pitch_timing, namespace=namespace)
    socketio.on_event('swingTiming', handle_swing_timing, namespace=namespace)
    socketio.on_event('move', handle_move, namespace=namespace)

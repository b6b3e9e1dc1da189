from flask import current_app

from ballpark import socketio
from ballpark.broadcast import SocketIOBroadcaster
from ballpark.services.games import CpuDriver, GameStateMachine

EXTENSION_KEY = 'ballpark'


def _config_int(app, key: str, default: int) -> int:
    try:
        return int(app.config.get(key, default))
    except (TypeError, ValueError):
        app.logger.warning(f"[config] {key} is not an integer, using {default}")
        return default


def build_game(app) -> GameStateMachine:
    """Create the game for this process and its CPU driver.

    CPU loops and response timeouts do not spawn in TESTING mode unless
    ENABLE_CPU_IN_TESTS is set; tests drive ticks by hand.
    """
    machine = GameStateMachine(
        SocketIOBroadcaster(),
        logger=app.logger,
        extra_player_policy=app.config.get('EXTRA_PLAYER_POLICY', 'spectate'),
    )
    autostart = not app.config.get('TESTING') or bool(app.config.get('ENABLE_CPU_IN_TESTS'))
    driver = CpuDriver(
        machine,
        spawn=socketio.start_background_task,
        sleep=socketio.sleep,
        tick_interval_ms=_config_int(app, 'CPU_TICK_INTERVAL_MS', 5000),
        reaction_delay_ms=_config_int(app, 'CPU_REACTION_DELAY_MS', 2000),
        response_timeout_sec=_config_int(app, 'RESPONSE_TIMEOUT_SEC', 0),
        autostart=autostart,
        logger=app.logger,
    )
    machine.attach_driver(driver)
    app.extensions[EXTENSION_KEY] = machine
    return machine


def get_game() -> GameStateMachine:
    return current_app.extensions[EXTENSION_KEY]

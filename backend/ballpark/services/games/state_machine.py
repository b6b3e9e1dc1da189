import logging
import random
import threading
from typing import Any, Dict, List, Optional

from ballpark.models import (
    BATTER,
    CPU,
    FIELD_DIMENSIONS,
    MOVE_SPEED,
    PITCH_TYPES,
    PITCHER,
    STATUS_BATTING,
    STATUS_PITCHING,
    STATUS_WAITING,
    STRIKE,
    HIT,
    HOME_RUN,
    FlashSequence,
    GameState,
    HitResult,
    Human,
    Player,
    PlayerStats,
    RoleOwner,
    sequence_to_wire,
)
from .registry import SessionRegistry
from .scoring import (
    accuracy,
    clamp,
    generate_flash_sequence,
    parse_sequence,
    parse_timings,
    power,
    resolve_hit,
    speed,
)


ROLES = (PITCHER, BATTER)
STRIKES_PER_OUT = 3
OUTS_PER_INNING = 3

EXTRA_PLAYER_SPECTATE = 'spectate'
EXTRA_PLAYER_REJECT = 'reject'

_MOVES = {
    'up': ('z', -MOVE_SPEED),
    'down': ('z', MOVE_SPEED),
    'left': ('x', -MOVE_SPEED),
    'right': ('x', MOVE_SPEED),
}


class GameStateMachine:
    """Authoritative state for one game: roster, roles, count and score.

    Every public method takes the same re-entrant lock, so socket handlers,
    CPU ticks and timeout workers are applied one at a time in the order
    they acquire it. Broadcasts happen while the lock is held so clients see
    transitions in the order they were applied.

    Actions from an owner that does not hold the required role, or that
    arrive in the wrong status, are dropped without any broadcast.
    """

    def __init__(self, broadcaster, logger: Optional[logging.Logger] = None,
                 extra_player_policy: str = EXTRA_PLAYER_SPECTATE, rng: Optional[random.Random] = None):
        self.state = GameState()
        self.registry = SessionRegistry()
        self.extra_player_policy = extra_player_policy
        self._out = broadcaster
        self._log = logger or logging.getLogger(__name__)
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        # Count for the CPU when it bats; it has no session to hold stats
        self._cpu_stats = PlayerStats()
        self._driver = None

    def attach_driver(self, driver) -> None:
        self._driver = driver

    @property
    def driver(self):
        return self._driver

    # ---- Queries ----

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self.state.to_dict()

    def roster(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [p.to_roster_dict() for p in self.registry.players()]

    def cpu_role_active(self, role: str) -> bool:
        with self._lock:
            return self.state.is_cpu_playing and self.state.owner_of(role) is CPU

    def pending_swing_for(self, owner: RoleOwner) -> Optional[FlashSequence]:
        with self._lock:
            if not self._holds(BATTER, owner) or self.state.status != STATUS_BATTING:
                return None
            return self.state.pending_swing

    def stats_for(self, owner: RoleOwner) -> Optional[PlayerStats]:
        with self._lock:
            if owner is CPU:
                return self._cpu_stats
            player = self.registry.get(owner.sid)
            return player.stats if player else None

    # ---- Session registry ----

    def join(self, sid: str, name: str) -> Optional[Player]:
        with self._lock:
            if sid in self.registry:
                return None
            state = self.state
            humans = [r for r in ROLES if isinstance(state.owner_of(r), Human)]
            if not humans:
                role = BATTER
            elif len(humans) == 1:
                role = PITCHER if humans[0] == BATTER else BATTER
            else:
                role = None

            if role is None and self.extra_player_policy == EXTRA_PLAYER_REJECT:
                self._log.info(f"[join-rejected] sid={sid} name={name} reason=full")
                self._out.send(sid, 'joinRejected', {'reason': 'Both roles are taken'})
                return None

            player = self.registry.add(sid, name)
            player.set_role(role)
            if role is not None:
                state.set_owner(role, Human(sid))
            if not humans:
                # First human in: CPU takes the mound, fresh at-bat
                state.current_pitcher = CPU
                self._clear_pending()
                self._set_status(STATUS_WAITING)
            elif role == PITCHER:
                self._clear_pending()
                self._set_status(STATUS_PITCHING)
            self._refresh_cpu_flag()

            self._log.info(f"[join] sid={sid} name={name} role={role or 'spectator'} players={len(self.registry)}")
            self._out.broadcast('playerJoined', player.to_dict())
            self._out.broadcast('gameStateUpdate', state.to_dict())
            self._sync_driver()
            return player

    def leave(self, sid: str) -> Optional[Player]:
        with self._lock:
            player = self.registry.remove(sid)
            if player is None:
                return None
            state = self.state
            for role in ROLES:
                if state.owner_of(role) == Human(sid):
                    self._hand_to_cpu(role)
                    self._log.info(f"[cpu-takeover] role={role} left_by={sid}")
            if not any(isinstance(state.owner_of(r), Human) for r in ROLES):
                # Nobody left to play against; park the game until someone joins
                state.current_pitcher = None
                state.current_batter = None
                self._clear_pending()
                self._set_status(STATUS_WAITING)
            self._refresh_cpu_flag()

            self._log.info(f"[leave] sid={sid} name={player.name} players={len(self.registry)}")
            self._out.broadcast('playerLeft', sid)
            self._out.broadcast('gameStateUpdate', state.to_dict())
            self._sync_driver()
            return player

    # ---- Turn transitions ----

    def select_pitch(self, owner: RoleOwner, pitch_type: Any) -> Optional[FlashSequence]:
        with self._lock:
            state = self.state
            if not self._holds(PITCHER, owner):
                return None
            if state.status not in (STATUS_WAITING, STATUS_PITCHING):
                return None
            if not isinstance(pitch_type, str) or pitch_type not in PITCH_TYPES:
                return None
            sequence = generate_flash_sequence(rng=self._rng)
            state.pitch_type = pitch_type
            state.pending_pitch = sequence
            state.pending_swing = None
            self._set_status(STATUS_PITCHING)
            self._log.info(f"[pitch-select] owner={owner!r} type={pitch_type} inning={state.inning}")
            if isinstance(owner, Human):
                self._out.send(owner.sid, 'startPitching', {
                    'pitchType': pitch_type,
                    'flashSequence': sequence_to_wire(sequence),
                })
            return sequence

    def pitch_timing(self, owner: RoleOwner, timings: Any, flash_sequence: Any = None) -> bool:
        with self._lock:
            state = self.state
            if not self._holds(PITCHER, owner) or state.status != STATUS_PITCHING:
                return False
            parsed = parse_timings(timings)
            sequence = state.pending_pitch or parse_sequence(flash_sequence)
            if not parsed or sequence is None:
                return False

            state.pitch_accuracy = accuracy(parsed, sequence)
            state.pitch_speed = speed(parsed)
            state.pending_pitch = None
            swing_sequence = generate_flash_sequence(state.pitch_speed, rng=self._rng)
            state.pending_swing = swing_sequence
            self._set_status(STATUS_BATTING)

            self._log.info(
                f"[pitch] owner={owner!r} type={state.pitch_type} speed={state.pitch_speed:.3f} accuracy={state.pitch_accuracy:.3f}"
            )
            self._out.broadcast('startBatting', {
                'pitchType': state.pitch_type,
                'pitchSpeed': state.pitch_speed,
                'flashSequence': sequence_to_wire(swing_sequence),
            })
            return True

    def swing_timing(self, owner: RoleOwner, timings: Any, flash_sequence: Any = None) -> Optional[HitResult]:
        with self._lock:
            state = self.state
            if not self._holds(BATTER, owner) or state.status != STATUS_BATTING:
                return None
            parsed = parse_timings(timings)
            sequence = state.pending_swing or parse_sequence(flash_sequence)
            if not parsed or sequence is None:
                return None

            result = resolve_hit(accuracy(parsed, sequence), power(parsed), state.pitch_speed, state.pitch_accuracy)
            self._log.info(f"[swing] owner={owner!r} result={result.type} power={result.power:.3f} accuracy={result.accuracy:.3f}")
            self._finish_at_bat(result)
            return result

    def expire_at_bat(self, at_bat: int) -> bool:
        """Forfeit an at-bat nobody answered.

        A stalled pitch returns the game to ``waiting``; a stalled swing is
        recorded as a strike. No-op if the game moved on since ``at_bat``.
        """
        with self._lock:
            state = self.state
            if at_bat != state.at_bat:
                return False
            if state.status == STATUS_PITCHING and isinstance(state.current_pitcher, Human):
                self._log.info(f"[timeout] stage=pitching at_bat={at_bat} pitcher={state.current_pitcher!r}")
                self._clear_pending()
                self._set_status(STATUS_WAITING)
                self._out.broadcast('gameStateUpdate', state.to_dict())
                return True
            if state.status == STATUS_BATTING and isinstance(state.current_batter, Human):
                self._log.info(f"[timeout] stage=batting at_bat={at_bat} batter={state.current_batter!r}")
                self._finish_at_bat(HitResult(STRIKE, 0.0, 0.0))
                return True
            return False

    def apply_hit(self, result: HitResult) -> None:
        """Record an at-bat outcome: stats, outs, score and inning rollover."""
        with self._lock:
            state = self.state
            stats = self._batter_stats()
            if result.type == STRIKE:
                stats.strikes += 1
                if stats.strikes >= STRIKES_PER_OUT:
                    state.outs += 1
                    stats.strikes = 0
                    stats.balls = 0
            elif result.type == HIT:
                stats.hits += 1
            elif result.type == HOME_RUN:
                stats.home_runs += 1
                stats.runs += 1
                state.score += 1

            if state.outs >= OUTS_PER_INNING:
                state.inning += 1
                state.outs = 0
                state.current_pitcher, state.current_batter = state.current_batter, state.current_pitcher
                if state.current_batter is CPU:
                    self._cpu_stats = PlayerStats()
                for role in ROLES:
                    player = self._player_for(role)
                    if player is not None:
                        player.set_role(role)
                self._refresh_cpu_flag()
                self._log.info(
                    f"[inning] inning={state.inning} pitcher={state.current_pitcher!r} batter={state.current_batter!r}"
                )
                self._sync_driver()

    # ---- Lobby chatter and movement ----

    def chat(self, sid: str, message: Any) -> bool:
        with self._lock:
            player = self.registry.get(sid)
            if player is None or not isinstance(message, str):
                return False
            self._out.broadcast('chat', {'name': player.name, 'message': message})
            return True

    def move(self, sid: str, direction: Any) -> Optional[Dict[str, float]]:
        with self._lock:
            player = self.registry.get(sid)
            step = _MOVES.get(direction) if isinstance(direction, str) else None
            if player is None or step is None:
                return None
            axis, delta = step
            half = FIELD_DIMENSIONS['size'] / 2
            player.position[axis] = clamp(player.position[axis] + delta, -half, half)
            position = dict(player.position)
            self._out.broadcast('playerMoved', {'id': sid, 'position': position})
            return position

    # ---- Internals (lock held) ----

    def _holds(self, role: str, owner: Optional[RoleOwner]) -> bool:
        if owner is None:
            return False
        if owner is CPU and not self.state.is_cpu_playing:
            return False
        return self.state.owner_of(role) == owner

    def _player_for(self, role: str) -> Optional[Player]:
        """Resolve a role to its session, handing the role to the CPU if the session is gone."""
        owner = self.state.owner_of(role)
        if not isinstance(owner, Human):
            return None
        player = self.registry.get(owner.sid)
        if player is None:
            self._log.warning(f"[cpu-takeover] role={role} missing_sid={owner.sid}")
            self._hand_to_cpu(role)
            self._refresh_cpu_flag()
        return player

    def _hand_to_cpu(self, role: str) -> None:
        self.state.set_owner(role, CPU)
        if role == BATTER:
            # Each spell at bat starts from a fresh count
            self._cpu_stats = PlayerStats()

    def _batter_stats(self) -> PlayerStats:
        player = self._player_for(BATTER)
        return player.stats if player is not None else self._cpu_stats

    def _finish_at_bat(self, result: HitResult) -> None:
        self.state.pending_swing = None
        self._set_status(STATUS_WAITING)
        self.apply_hit(result)
        self._out.broadcast('hitResult', result.to_dict())
        self._out.broadcast('gameStateUpdate', self.state.to_dict())

    def _clear_pending(self) -> None:
        self.state.pending_pitch = None
        self.state.pending_swing = None

    def _set_status(self, status: str) -> None:
        state = self.state
        state.status = status
        state.at_bat += 1
        responsible = {STATUS_PITCHING: state.current_pitcher, STATUS_BATTING: state.current_batter}.get(status)
        if self._driver is not None and isinstance(responsible, Human):
            self._driver.arm_timeout(state.at_bat)

    def _refresh_cpu_flag(self) -> None:
        self.state.is_cpu_playing = any(self.state.owner_of(r) is CPU for r in ROLES)

    def _sync_driver(self) -> None:
        if self._driver is not None:
            self._driver.sync()

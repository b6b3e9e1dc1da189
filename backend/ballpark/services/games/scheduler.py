import logging
import random
import time
from typing import Callable, Dict, Optional

from ballpark.models import BATTER, CPU, PITCH_TYPES, PITCHER
from .scoring import synthesize_timings


class TimerHandle:
    """Cancellation flag shared between the driver and one background loop."""

    def __init__(self, role: str):
        self.role = role
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class CpuDriver:
    """Plays every CPU-held role on a fixed schedule.

    - One background loop per CPU role, started and cancelled by ``sync``
    - Each tick waits ``tick_interval`` then the reaction delay before submitting
    - Ownership is re-checked by the state machine at submit time, so a tick
      that loses a race with a human joining is simply dropped
    - ``autostart=False`` keeps loops from spawning (tests call ``tick``)
    """

    def __init__(self, machine, spawn: Optional[Callable] = None, sleep: Optional[Callable[[float], None]] = None,
                 tick_interval_ms: int = 5000, reaction_delay_ms: int = 2000, response_timeout_sec: int = 0,
                 autostart: bool = True, rng: Optional[random.Random] = None,
                 logger: Optional[logging.Logger] = None):
        self._machine = machine
        self._spawn = spawn
        self._sleep = sleep or time.sleep
        self.tick_interval = tick_interval_ms / 1000.0
        self.reaction_delay = reaction_delay_ms / 1000.0
        self.response_timeout = response_timeout_sec
        self.autostart = autostart
        self._rng = rng or random.Random()
        self._log = logger or logging.getLogger(__name__)
        self._handles: Dict[str, TimerHandle] = {}

    def running(self, role: str) -> bool:
        return role in self._handles

    def sync(self) -> None:
        """Start loops for roles the CPU just took, cancel loops for roles it lost."""
        for role in (PITCHER, BATTER):
            active = self._machine.cpu_role_active(role)
            handle = self._handles.get(role)
            if active and handle is None:
                handle = TimerHandle(role)
                self._handles[role] = handle
                self._log.info(f"[cpu-start] role={role} interval={self.tick_interval}s")
                if self.autostart and self._spawn is not None:
                    self._spawn(self._loop, handle)
            elif not active and handle is not None:
                handle.cancel()
                del self._handles[role]
                self._log.info(f"[cpu-stop] role={role}")

    def stop(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def tick(self, role: str, handle: Optional[TimerHandle] = None) -> bool:
        if handle is not None and handle.cancelled:
            return False
        if role == PITCHER:
            return self._pitch(handle)
        return self._swing(handle)

    def arm_timeout(self, at_bat: int) -> None:
        if self.response_timeout <= 0 or not self.autostart or self._spawn is None:
            return
        self._spawn(self._expire, at_bat)

    def _loop(self, handle: TimerHandle) -> None:
        try:
            while not handle.cancelled:
                self._sleep(self.tick_interval)
                if handle.cancelled:
                    return
                try:
                    self.tick(handle.role, handle)
                except Exception:
                    self._log.exception(f"[cpu-error] role={handle.role}")
        finally:
            # A loop that dies uncancelled must not block sync from restarting it
            if not handle.cancelled and self._handles.get(handle.role) is handle:
                del self._handles[handle.role]

    def _pitch(self, handle: Optional[TimerHandle]) -> bool:
        if not self._machine.cpu_role_active(PITCHER):
            return False
        pitch_type = self._rng.choice(sorted(PITCH_TYPES))
        sequence = self._machine.select_pitch(CPU, pitch_type)
        if sequence is None:
            return False
        self._sleep(self.reaction_delay)
        if handle is not None and handle.cancelled:
            self._log.info("[cpu-abort] role=pitcher cancelled during reaction delay")
            return False
        timings = synthesize_timings(sequence, self._rng)
        submitted = self._machine.pitch_timing(CPU, timings)
        if submitted:
            self._log.info(f"[cpu-pitch] type={pitch_type}")
        return submitted

    def _swing(self, handle: Optional[TimerHandle]) -> bool:
        sequence = self._machine.pending_swing_for(CPU)
        if sequence is None:
            return False
        self._sleep(self.reaction_delay)
        if handle is not None and handle.cancelled:
            self._log.info("[cpu-abort] role=batter cancelled during reaction delay")
            return False
        timings = synthesize_timings(sequence, self._rng)
        result = self._machine.swing_timing(CPU, timings)
        if result is not None:
            self._log.info(f"[cpu-swing] result={result.type}")
        return result is not None

    def _expire(self, at_bat: int) -> None:
        self._sleep(self.response_timeout)
        self._machine.expire_at_bat(at_bat)

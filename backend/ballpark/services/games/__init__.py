"""Game domain services: state machine, timing resolver and CPU timers.

This package contains the game mechanics; socket handlers and HTTP routes
call into it, keeping transport concerns separated from the rules.
"""

from .registry import SessionRegistry
from .scheduler import CpuDriver, TimerHandle
from .state_machine import GameStateMachine

__all__ = ['CpuDriver', 'GameStateMachine', 'SessionRegistry', 'TimerHandle']

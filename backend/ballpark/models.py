"""In-memory game records: players, role owners, game state, results."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


STATUS_WAITING = 'waiting'
STATUS_PITCHING = 'pitching'
STATUS_BATTING = 'batting'
# Declared for clients; no transition enters it.
STATUS_FIELDING = 'fielding'

PITCHER = 'pitcher'
BATTER = 'batter'

STRIKE = 'strike'
FOUL = 'foul'
HIT = 'hit'
HOME_RUN = 'homeRun'

PITCH_TYPES = {
    'fastball': {'speed': 1.0, 'accuracy': 0.8},
    'curve': {'speed': 0.7, 'accuracy': 0.6},
    'changeup': {'speed': 0.5, 'accuracy': 0.9},
}

FIELD_DIMENSIONS = {
    'size': 100,
    'diamond_size': 70,
    'pitcher_mound_radius': 5,
}

MOVE_SPEED = 0.5


@dataclass(frozen=True)
class Human:
    sid: str

    def to_wire(self) -> str:
        return self.sid


class _Cpu:
    """Singleton marker for a role played by the CPU surrogate."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def to_wire(self) -> str:
        return 'cpu'

    def __repr__(self) -> str:
        return 'CPU'


CPU = _Cpu()

RoleOwner = Union[Human, _Cpu]


def owner_to_wire(owner: Optional[RoleOwner]) -> Optional[str]:
    return owner.to_wire() if owner is not None else None


@dataclass
class PlayerStats:
    hits: int = 0
    home_runs: int = 0
    runs: int = 0
    strikes: int = 0
    balls: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'hits': self.hits,
            'homeRuns': self.home_runs,
            'runs': self.runs,
            'strikes': self.strikes,
            'balls': self.balls,
        }


@dataclass
class Player:
    sid: str
    name: str
    is_pitching: bool = False
    is_batting: bool = False
    position: Dict[str, float] = field(default_factory=lambda: {'x': 0.0, 'y': 0.0, 'z': 0.0})
    stats: PlayerStats = field(default_factory=PlayerStats)

    def set_role(self, role: Optional[str]) -> None:
        self.is_pitching = role == PITCHER
        self.is_batting = role == BATTER

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.sid,
            'name': self.name,
            'isPitching': self.is_pitching,
            'isBatting': self.is_batting,
        }

    def to_roster_dict(self) -> Dict[str, Any]:
        data = self.to_dict()
        data['position'] = dict(self.position)
        data['stats'] = self.stats.to_dict()
        return data


@dataclass(frozen=True)
class FlashEvent:
    time: float
    x: float
    y: float

    def to_dict(self) -> Dict[str, Any]:
        return {'time': self.time, 'position': {'x': self.x, 'y': self.y}}


FlashSequence = List[FlashEvent]


def sequence_to_wire(sequence: FlashSequence) -> List[Dict[str, Any]]:
    return [flash.to_dict() for flash in sequence]


@dataclass(frozen=True)
class HitResult:
    type: str
    power: float
    accuracy: float

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'power': self.power, 'accuracy': self.accuracy}


@dataclass
class GameState:
    inning: int = 1
    outs: int = 0
    score: int = 0
    status: str = STATUS_WAITING
    current_pitcher: Optional[RoleOwner] = None
    current_batter: Optional[RoleOwner] = None
    pitch_type: Optional[str] = None
    pitch_speed: float = 0.0
    pitch_accuracy: float = 0.0
    is_cpu_playing: bool = False
    # Sequences issued to the current role owners, scored once then cleared
    pending_pitch: Optional[FlashSequence] = None
    pending_swing: Optional[FlashSequence] = None
    # Bumped on every status change so stale timers can tell they are stale
    at_bat: int = 0

    def owner_of(self, role: str) -> Optional[RoleOwner]:
        return self.current_pitcher if role == PITCHER else self.current_batter

    def set_owner(self, role: str, owner: Optional[RoleOwner]) -> None:
        if role == PITCHER:
            self.current_pitcher = owner
        else:
            self.current_batter = owner

    def to_dict(self) -> Dict[str, Any]:
        return {
            'inning': self.inning,
            'outs': self.outs,
            'score': self.score,
            'currentPitcher': owner_to_wire(self.current_pitcher),
            'currentBatter': owner_to_wire(self.current_batter),
            'gameStatus': self.status,
        }

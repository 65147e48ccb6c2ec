"""Pure snake game engine.

Everything here works on immutable ``GameState`` values so that the rules
can be exercised without a server, a timer or a browser. Side effects
(sounds, persistence, pushing state to clients) are reported back to the
caller as event names and carried out by the session layer.
"""

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

Cell = Tuple[int, int]

BOARD_SIZE = 18
INITIAL_SNAKE: Tuple[Cell, ...] = ((7, 7),)
INITIAL_FOOD: Cell = (5, 5)
BASE_SPEED_MS = 150
MIN_SPEED_MS = 70
SPEED_STEP_MS = 5
FOOD_POINTS = 10

# Events reported by step()
EVENT_EAT = 'eat'
EVENT_GAME_OVER = 'game_over'
EVENT_HIGH_SCORE = 'high_score'


class Direction(str, Enum):
    UP = 'UP'
    DOWN = 'DOWN'
    LEFT = 'LEFT'
    RIGHT = 'RIGHT'

    @property
    def delta(self) -> Cell:
        return _DELTAS[self]

    @property
    def reverse(self) -> 'Direction':
        return _REVERSES[self]

    @classmethod
    def parse(cls, raw) -> Optional['Direction']:
        """Return the matching direction, or None for anything unrecognized."""
        if isinstance(raw, Direction):
            return raw
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            return None


_DELTAS = {
    Direction.UP: (0, -1),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
}

_REVERSES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

KEY_BINDINGS = {
    'ArrowUp': Direction.UP,
    'ArrowDown': Direction.DOWN,
    'ArrowLeft': Direction.LEFT,
    'ArrowRight': Direction.RIGHT,
}


def key_to_direction(key) -> Optional[Direction]:
    """Map a browser ``KeyboardEvent.key`` value to a direction."""
    if not isinstance(key, str):
        return None
    return KEY_BINDINGS.get(key)


@dataclass(frozen=True)
class Rules:
    board_size: int = BOARD_SIZE
    base_speed_ms: int = BASE_SPEED_MS
    min_speed_ms: int = MIN_SPEED_MS
    speed_step_ms: int = SPEED_STEP_MS
    food_points: int = FOOD_POINTS
    # Off by default: food may land under the snake, as players know it
    food_avoids_snake: bool = False

    def __post_init__(self):
        cells = INITIAL_SNAKE + (INITIAL_FOOD,)
        smallest = max(max(x, y) for x, y in cells) + 1
        if self.board_size < smallest:
            raise ValueError(f"board_size must be at least {smallest} to fit the starting snake and food, got {self.board_size}")
        if self.min_speed_ms <= 0 or self.base_speed_ms < self.min_speed_ms:
            raise ValueError("speeds must satisfy 0 < min_speed_ms <= base_speed_ms")

    @classmethod
    def from_config(cls, config) -> 'Rules':
        return cls(
            board_size=int(config.get('SNAKE_BOARD_SIZE', BOARD_SIZE)),
            base_speed_ms=int(config.get('SNAKE_BASE_SPEED_MS', BASE_SPEED_MS)),
            min_speed_ms=int(config.get('SNAKE_MIN_SPEED_MS', MIN_SPEED_MS)),
            speed_step_ms=int(config.get('SNAKE_SPEED_STEP_MS', SPEED_STEP_MS)),
            food_points=int(config.get('SNAKE_FOOD_POINTS', FOOD_POINTS)),
            food_avoids_snake=bool(config.get('SNAKE_FOOD_AVOID_SNAKE', False)),
        )


DEFAULT_RULES = Rules()


@dataclass(frozen=True)
class GameState:
    snake: Tuple[Cell, ...]
    food: Cell
    direction: Direction
    pending_direction: Direction
    speed: int
    score: int
    high_score: int
    game_over: bool
    board_size: int = BOARD_SIZE

    @property
    def head(self) -> Cell:
        return self.snake[0]

    @property
    def tail(self) -> Cell:
        return self.snake[-1]

    @property
    def status(self) -> str:
        return 'game_over' if self.game_over else 'running'

    def in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.board_size and 0 <= y < self.board_size


@dataclass(frozen=True)
class StepResult:
    state: GameState
    events: Tuple[str, ...] = ()


def initial_state(high_score: int = 0, rules: Rules = DEFAULT_RULES) -> GameState:
    return GameState(
        snake=INITIAL_SNAKE,
        food=INITIAL_FOOD,
        direction=Direction.RIGHT,
        pending_direction=Direction.RIGHT,
        speed=rules.base_speed_ms,
        score=0,
        high_score=max(0, int(high_score)),
        game_over=False,
        board_size=rules.board_size,
    )


def restart(state: GameState, rules: Rules = DEFAULT_RULES) -> GameState:
    """Back to a fresh game; the high score survives."""
    return initial_state(high_score=state.high_score, rules=rules)


def set_direction(state: GameState, requested) -> GameState:
    """Queue a heading change for the next tick.

    Requests that reverse the committed direction, unknown values and
    anything arriving after game over leave the state untouched.
    """
    if state.game_over:
        return state
    direction = Direction.parse(requested)
    if direction is None or direction == state.direction.reverse:
        return state
    if direction == state.pending_direction:
        return state
    return replace(state, pending_direction=direction)


def spawn_food(state: GameState, rng: random.Random, avoid_snake: bool = False) -> Cell:
    size = state.board_size
    if not avoid_snake:
        return (rng.randrange(size), rng.randrange(size))
    occupied = set(state.snake)
    free = [(x, y) for y in range(size) for x in range(size) if (x, y) not in occupied]
    if not free:
        # Board is full; nowhere better to put it
        return (rng.randrange(size), rng.randrange(size))
    return rng.choice(free)


def step(state: GameState, rng: Optional[random.Random] = None, rules: Rules = DEFAULT_RULES) -> StepResult:
    """Advance the game by one tick."""
    if state.game_over:
        return StepResult(state)
    rng = rng or random

    direction = state.pending_direction
    dx, dy = direction.delta
    hx, hy = state.head
    new_head = (hx + dx, hy + dy)

    # Checked against the body before the tail moves
    if not state.in_bounds(new_head) or new_head in state.snake:
        events = [EVENT_GAME_OVER]
        high_score = state.high_score
        if state.score > high_score:
            high_score = state.score
            events.append(EVENT_HIGH_SCORE)
        ended = replace(state, direction=direction, game_over=True, high_score=high_score)
        return StepResult(ended, tuple(events))

    snake = (new_head,) + state.snake
    if new_head == state.food:
        grown = replace(
            state,
            snake=snake,
            direction=direction,
            score=state.score + rules.food_points,
            speed=max(rules.min_speed_ms, state.speed - rules.speed_step_ms),
        )
        grown = replace(grown, food=spawn_food(grown, rng, avoid_snake=rules.food_avoids_snake))
        return StepResult(grown, (EVENT_EAT,))

    return StepResult(replace(state, snake=snake[:-1], direction=direction))


CELL_HEAD = 'head'
CELL_BODY = 'body'
CELL_FOOD = 'food'
CELL_EMPTY = 'empty'


def render_cells(state: GameState) -> List[List[str]]:
    """Classify every cell, row by row (y outer, x inner)."""
    size = state.board_size
    rows = [[CELL_EMPTY] * size for _ in range(size)]
    fx, fy = state.food
    if state.in_bounds(state.food):
        rows[fy][fx] = CELL_FOOD
    # Snake drawn over food so a spawn under the body stays hidden
    for x, y in state.snake[1:]:
        rows[y][x] = CELL_BODY
    hx, hy = state.head
    rows[hy][hx] = CELL_HEAD
    return rows


def to_dict(state: GameState) -> dict:
    return {
        'board_size': state.board_size,
        'snake': [list(c) for c in state.snake],
        'food': list(state.food),
        'direction': state.direction.value,
        'pending_direction': state.pending_direction.value,
        'speed': state.speed,
        'score': state.score,
        'high_score': state.high_score,
        'game_over': state.game_over,
        'status': state.status,
        'cells': render_cells(state),
    }

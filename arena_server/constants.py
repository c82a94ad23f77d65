"""Gameplay constants shared across the server modules."""

TICK_INTERVAL_MS: int = 250
DEFAULT_GRID_SIZE: int = 34
MIN_GRID_SIZE: int = 5
MAX_GRID_SIZE: int = 200
MAX_ROOM_PLAYERS: int = 4
ROOM_ID_MIN: int = 100_000
ROOM_ID_MAX: int = 999_999
MAX_NAME_LENGTH: int = 16

PLACEMENT_ATTEMPTS: int = 100
SPAWN_SEPARATION: int = 3
MIN_SNAKE_LENGTH: int = 2
NORMAL_FOOD_PROBABILITY: float = 0.4

MAGNET_RADIUS: float = 5.0
MAGNET_STEP: float = 0.5
MAGNET_CAPTURE_DISTANCE: float = 0.4
MAGNET_MIN_PULL_DISTANCE: float = 0.1

CORPSE_LIFETIME_MS: int = 2_000
REVIVE_IMMUNITY_MS: int = 3_000
REVIVE_GHOST_MS: int = 3_000

BASE_SPEED_FACTOR: float = 1.0
DASH_SPEED_MULTIPLIER: float = 2.0
DASH_DURATION_MS: int = 2_000
DASH_COOLDOWN_MS: int = 3_000
DASH_INPUT_WINDOW_MS: int = 250

PLAYER_COLORS: tuple[str, ...] = ("#22c55e", "#3b82f6", "#eab308", "#a855f7")

"""
FSRS Constants and Parameters

All configurable parameters for the FSRS-6 scheduler in one place.
Weights are the published FSRS-6 defaults (21 values).
"""

from enum import Enum, IntEnum
from typing import Final


# ---- Ratings ----

class Rating(IntEnum):
    """Learner feedback on a retrieval attempt."""
    AGAIN = 1   # Complete blackout, forgot the answer
    HARD = 2    # Significant difficulty recalling
    GOOD = 3    # Correct with some effort
    EASY = 4    # Perfect recall with no hesitation


# ---- Card States ----

class CardStatus(str, Enum):
    """Lifecycle state of a card's memory."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


# ---- Card Directions ----

DIRECTIONS: Final[tuple[str, ...]] = ("forward", "reverse")
DISABLED_DIRECTION: Final[str] = "disabled"


# ---- Time ----

MINUTE_MS: Final[int] = 60 * 1000
DAY_MS: Final[int] = 24 * 60 * MINUTE_MS


# ---- FSRS-6 Weights ----
# Source: https://github.com/open-spaced-repetition/fsrs4anki/wiki/The-Algorithm

W: Final[tuple[float, ...]] = (
    0.212, 1.2931, 2.3065, 8.2956, 6.4133, 0.8334, 3.0194, 0.001, 1.8722,
    0.1666, 0.796, 1.4835, 0.0614, 0.2629, 1.6483, 0.6014, 1.8729, 0.5425,
    0.0912, 0.0658, 0.1542,
)

DECAY: Final[float] = -W[20]
FACTOR: Final[float] = 0.9 ** (1.0 / DECAY) - 1.0


# ---- Global Constants ----

REQUEST_RETENTION = 0.90   # Target retrievability at the due date
MAXIMUM_INTERVAL = 730     # Days (about 2 years)
S_MIN = 0.001              # Minimum stability (days)
S_MAX = 36500.0            # Maximum stability (days)
D_MIN = 1.0                # Minimum difficulty
D_MAX = 10.0               # Maximum difficulty
INITIAL_S_FLOOR = 0.1      # Lowest stability a first review can assign


# ---- Learning Steps (minutes) ----

LEARNING_STEPS: Final[tuple[float, ...]] = (1.0, 10.0)
RELEARNING_STEPS: Final[tuple[float, ...]] = (10.0,)


# ---- Fuzz ----
# (start_days, end_days, factor): spread added per range an interval covers

FUZZ_RANGES: Final[tuple[tuple[float, float, float], ...]] = (
    (2.5, 7.0, 0.15),
    (7.0, 20.0, 0.10),
    (20.0, float("inf"), 0.05),
)
FUZZ_MIN_INTERVAL = 2.5

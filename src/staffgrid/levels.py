import math
from dataclasses import dataclass
from enum import Enum


class Level(str, Enum):
    EMPTY = "empty"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    OVER = "over"


@dataclass(frozen=True)
class ThresholdTable:
    """Inclusive upper bounds for the LOW, MEDIUM and HIGH tiers."""
    low: float
    medium: float
    high: float

    def __post_init__(self):
        if not 0 < self.low < self.medium < self.high:
            raise ValueError(f"Thresholds must satisfy 0 < low < medium < high, got {self}")

    def classify(self, value: float) -> Level:
        if math.isnan(value) or value <= 0: return Level.EMPTY
        if value <= self.low: return Level.LOW
        if value <= self.medium: return Level.MEDIUM
        if value <= self.high: return Level.HIGH
        return Level.OVER


# One person's summed percentage
SUBJECT_THRESHOLDS = ThresholdTable(low=50, medium=80, high=100)
# Percentage points stacked by several people on one project
PROJECT_THRESHOLDS = ThresholdTable(low=100, medium=200, high=300)

def classify(total_percentage: float, thresholds: ThresholdTable = SUBJECT_THRESHOLDS) -> Level:
    return thresholds.classify(total_percentage)

"""Core enumerations for the market radar."""

from enum import Enum


class Severity(str, Enum):
    """Anomaly severity tiers."""
    NORMAL = "normal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PatternType(str, Enum):
    """Single-snapshot pattern heuristics."""
    SPIKE = "spike"
    PUMP = "pump"
    DUMP = "dump"


class FetchState(str, Enum):
    """Fetch orchestrator lifecycle states."""
    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"


class LogEntryType(str, Enum):
    """Request log entry types."""
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"

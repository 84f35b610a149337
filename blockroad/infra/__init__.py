from .counters import ErrorTracker
from .log import get_logger
from .telemetry import NullEventLogger, RuntimeEventLogger

__all__ = ["ErrorTracker", "get_logger", "NullEventLogger", "RuntimeEventLogger"]

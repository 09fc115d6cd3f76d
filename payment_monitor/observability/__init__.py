from .activity import ActivityLog, setup_logging
from .metrics import SinkMetrics

__all__ = ["ActivityLog", "SinkMetrics", "setup_logging"]

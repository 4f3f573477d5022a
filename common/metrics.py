"""
Metrics for a single analysis request.
"""
import time
from typing import Dict, Any, Optional
from datetime import datetime


class AnalysisMetrics:
    """Track stage timings and service usage for one analysis."""

    def __init__(self):
        self.start_time = time.time()
        self.end_time: Optional[float] = None
        self.stages: Dict[str, float] = {}
        self.llm_calls = 0
        self.rows = 0

    def mark_stage(self, stage_name: str):
        """Mark completion of a stage."""
        self.stages[stage_name] = time.time()

    def finish(self):
        """Mark analysis as finished."""
        self.end_time = time.time()

    def add_llm_call(self):
        self.llm_calls += 1

    def set_rows(self, count: int):
        self.rows = count

    def duration(self) -> float:
        """Get total duration in seconds."""
        if self.end_time:
            return self.end_time - self.start_time
        return time.time() - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dict."""
        return {
            "duration_seconds": round(self.duration(), 3),
            "llm_calls": self.llm_calls,
            "rows": self.rows,
            "stages": {k: round(v - self.start_time, 3) for k, v in self.stages.items()},
            "start_time": datetime.fromtimestamp(self.start_time).isoformat(),
            "end_time": datetime.fromtimestamp(self.end_time).isoformat() if self.end_time else None
        }

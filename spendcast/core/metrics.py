"""
Metrics and observability for forecast requests.
"""

import threading
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)


class ForecastMetrics:
    """Track metrics for analysis and forecast operations."""

    def __init__(self):
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.cache_hits = 0
        self.skipped_records = 0
        self.total_processing_time = 0.0
        self.requests_by_operation: Dict[str, int] = {}
        self._lock = threading.Lock()

    def record_request(
        self,
        operation: str,
        processing_time: float,
        success: bool = True,
        cache_hit: bool = False,
        skipped_records: int = 0,
    ):
        """Record one analysis or forecast operation."""
        with self._lock:
            self.total_requests += 1
            self.total_processing_time += processing_time
            self.requests_by_operation[operation] = self.requests_by_operation.get(operation, 0) + 1
            self.skipped_records += skipped_records

            if success:
                self.successful_requests += 1
            else:
                self.failed_requests += 1
            if cache_hit:
                self.cache_hits += 1

        logger.info(
            f"Metrics: requests={self.total_requests}, "
            f"success={self.successful_requests}, "
            f"failures={self.failed_requests}, "
            f"cache_hits={self.cache_hits}, "
            f"avg_time={self.get_average_processing_time():.3f}s"
        )

    def get_average_processing_time(self) -> float:
        """Get average processing time in seconds."""
        if self.total_requests == 0:
            return 0.0
        return self.total_processing_time / self.total_requests

    def get_stats(self) -> Dict[str, Any]:
        """Get current statistics."""
        return {
            'total_requests': self.total_requests,
            'successful_requests': self.successful_requests,
            'failed_requests': self.failed_requests,
            'cache_hits': self.cache_hits,
            'skipped_records': self.skipped_records,
            'requests_by_operation': dict(self.requests_by_operation),
            'average_processing_time_seconds': self.get_average_processing_time(),
            'success_rate': (
                self.successful_requests / self.total_requests
                if self.total_requests > 0 else 0.0
            )
        }


# Global metrics instance
metrics = ForecastMetrics()

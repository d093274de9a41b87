from typing import Any, Dict

from wayfollow.utils.logger import get_logger


class HealthMonitor:
    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = get_logger(__name__)
        self.consecutive_resets = 0
        self.total_resets = 0
        self.budget_misses = 0

    def check_latency(self, latency_ms: float) -> bool:
        budget = self.config.get("tick_budget_ms", 0)
        if budget and latency_ms > budget:
            self.budget_misses += 1
            self.logger.warning("Tick budget exceeded: %.2f ms > %.2f ms", latency_ms, budget)
            return False
        return True

    def record_reset(self) -> None:
        self.consecutive_resets += 1
        self.total_resets += 1
        limit = int(self.config.get("max_consecutive_resets", 0) or 0)
        # warn once per streak
        if limit and self.consecutive_resets == limit + 1:
            self.logger.warning("Vehicle reset for %d consecutive ticks; start pose may be off-road", self.consecutive_resets)

    def record_control(self) -> None:
        self.consecutive_resets = 0

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class TickMeter:
    """Exponential moving average tick-rate estimator."""

    smoothing: float = 0.9
    rate: float = 0.0
    _last_ts: float = field(default_factory=time.perf_counter)

    def tick(self) -> float:
        now = time.perf_counter()
        dt = max(now - self._last_ts, 1e-9)
        inst_rate = 1.0 / dt
        self.rate = inst_rate if self.rate <= 0 else (self.smoothing * self.rate + (1 - self.smoothing) * inst_rate)
        self._last_ts = now
        return self.rate


def elapsed_ms(start_ts: float) -> float:
    return (time.perf_counter() - start_ts) * 1000.0

import json
from pathlib import Path
from typing import Optional


class EventLogger:
    """Driver mode transitions, one JSON line per change."""

    def __init__(self, run_dir: Path, step_s: Optional[float] = None):
        self.log_path = Path(run_dir) / "driver_events.jsonl"
        self.step_s = step_s
        self.last_state = None
        self.last_tick = 0
        self.log_path.touch(exist_ok=True)

    def log(self, tick: int, state: str, message: str, details: dict):
        if state == self.last_state:
            return
        event = {
            "tick": tick,
            "state": state,
            "previous": self.last_state,
            "previous_ticks": tick - self.last_tick,
            "message": message,
            "details": details,
        }
        # lock-step: sim time is tick count times the fixed step
        if self.step_s:
            event["sim_time_s"] = round(tick * self.step_s, 3)
        with open(self.log_path, "a") as f:
            f.write(json.dumps(event) + "\n")
        self.last_state = state
        self.last_tick = tick

#!/usr/bin/env python3
import json
import sys
from pathlib import Path


def pct(n, d):
    return (100.0 * n / d) if d else 0.0


def summarize(m: dict) -> str:
    n = m.get("ticks", 0)
    lines = ["", "============ WAYFOLLOW RUN SUMMARY ============"]
    lines.append(f"Ticks: {n}")
    if n == 0:
        lines.append("No ticks recorded")
        return "\n".join(lines)
    commands = m.get("commands", 0)
    resets = m.get("resets", 0)
    lines.append(f"Commands: {commands} ({pct(commands, n):.1f}%)")
    lines.append(f"Resets:   {resets} ({pct(resets, n):.1f}%)")
    lat = m.get("latency_ms", {}) or {}
    lines.append(f"Tick latency (ms): avg={lat.get('avg', 0.0):.2f}  max={lat.get('max', 0.0):.2f}")
    lines.append(f"Tick rate: {m.get('tick_rate', 0.0):.2f} Hz")
    lines.append(f"Stop reason: {m.get('stop_reason')}")
    cfg = m.get("config", {}) or {}
    if cfg:
        lines.append(
            f"Config: target={cfg.get('target_speed')} km/h  threshold={cfg.get('speed_threshold')} m/s  "
            f"lookahead={cfg.get('lookahead_distance')} m  policy={cfg.get('successor_policy')}"
        )
    lines.append("===============================================")
    return "\n".join(lines)


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/summarize_run.py results/run_YYYYMMDD_HHMMSS")
        sys.exit(1)

    run_dir = Path(sys.argv[1])
    metrics_path = run_dir / "metrics.json"
    if not metrics_path.exists():
        raise FileNotFoundError(f"Missing: {metrics_path}")

    print(summarize(json.loads(metrics_path.read_text())))


if __name__ == "__main__":
    main()

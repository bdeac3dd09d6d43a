"""Benchmark: Ability check throughput: checks per second.

Measures how many Ability.allowed() calls complete per second against a rule
list with many subjects, once through the subject index and once with a
full scan of every rule.
"""
from __future__ import annotations

import json
import time
from pathlib import Path

from ability_engine import ALL, MANAGE, Ability

_ITERATIONS: int = 2_000
_SUBJECT_TYPES: int = 200


def _make_ability() -> tuple[Ability, list[type]]:
    """Build an ability with a few rules for each of many subject classes."""
    ability = Ability()
    ability.grant("read", ALL)
    subject_types = [type(f"Model{i}", (), {"owner_id": i}) for i in range(_SUBJECT_TYPES)]
    for subject_type in subject_types:
        ability.grant("update", subject_type, owner_id=1)
        ability.deny("destroy", subject_type)
    ability.deny(MANAGE, "audit_log")
    return ability, subject_types


def _measure(check: object, iterations: int) -> float:
    start = time.perf_counter()
    for _ in range(iterations):
        check()  # type: ignore[operator]
    return time.perf_counter() - start


def bench_check_throughput() -> dict[str, object]:
    """Benchmark Ability.allowed() throughput, indexed and full scan.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, full_scan_ops_per_second.
    """
    ability, subject_types = _make_ability()
    subject = subject_types[_SUBJECT_TYPES // 2]()
    evaluator = ability._evaluator

    indexed = _measure(lambda: ability.allowed("update", subject), _ITERATIONS)
    scanned = _measure(
        lambda: evaluator.relevant_rules("update", subject, full_scan=True), _ITERATIONS
    )

    result: dict[str, object] = {
        "operation": "ability_check_throughput",
        "iterations": _ITERATIONS,
        "total_seconds": round(indexed, 4),
        "ops_per_second": round(_ITERATIONS / indexed, 1),
        "avg_latency_ms": round(indexed / _ITERATIONS * 1000, 4),
        "full_scan_ops_per_second": round(_ITERATIONS / scanned, 1),
    }
    print(
        f"[bench_check_throughput] {result['operation']}: "
        f"{result['ops_per_second']:,.0f} ops/sec  "
        f"avg {result['avg_latency_ms']:.4f} ms  "
        f"(full scan {result['full_scan_ops_per_second']:,.0f} ops/sec)"
    )
    return result


def run_benchmark() -> dict[str, object]:
    """Entry point returning the benchmark result dict."""
    return bench_check_throughput()


if __name__ == "__main__":
    result = run_benchmark()
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "check_throughput_baseline.json"
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")

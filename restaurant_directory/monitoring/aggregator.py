from __future__ import annotations

from collections import Counter
from typing import Any

REQUEST_EVENT = "request"


def compute_performance(events: list[dict[str, Any]]) -> dict[str, Any]:
    requests = [e for e in events if e["type"] == REQUEST_EVENT]
    total = len(requests)

    times = [r["response_time_ms"] for r in requests if "response_time_ms" in r]
    avg_time = round(sum(times) / len(times), 2) if times else 0.0
    max_time = round(max(times), 2) if times else 0.0

    # Busiest paths
    path_counter: Counter[str] = Counter()
    for r in requests:
        path_counter[r.get("path", "unknown")] += 1
    top_paths = [{"path": p, "count": c} for p, c in path_counter.most_common(10)]

    status_counter: Counter[str] = Counter()
    for r in requests:
        status_counter[str(r.get("status_code", "unknown"))] += 1

    errors = sum(1 for r in requests if r.get("status_code", 0) >= 500)

    return {
        "total_requests": total,
        "avg_response_time_ms": avg_time,
        "max_response_time_ms": max_time,
        "top_paths": top_paths,
        "status_codes": dict(status_counter),
        "error_rate": round(errors / total * 100, 1) if total else 0.0,
    }

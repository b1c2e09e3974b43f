#!/usr/bin/env python3
"""Benchmark store dispatch and journal replay with repeatable synthetic shipments."""

from __future__ import annotations

import argparse
import json
import os
import random
import statistics
import sys
import tempfile
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.models.logistics import ShipmentCreateRequest, ShipmentStatus
from app.services.app_store import AppStore
from app.services.database import DatabaseService
from app.services.state_journal import StateJournal


CITIES = ["Delhi", "Mumbai", "Bangalore", "Chennai", "Jaipur", "Pune", "Kolkata", "Hyderabad"]


def percentile(values: list[float], p: float) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    idx = int((len(ordered) - 1) * p)
    return ordered[max(0, min(len(ordered) - 1, idx))]


def synthetic_request(rng: random.Random, index: int) -> ShipmentCreateRequest:
    origin, destination = rng.sample(CITIES, 2)
    pay_per_shipment = rng.random() < 0.5
    return ShipmentCreateRequest(
        pickup_location=origin,
        destination=destination,
        weight=round(rng.uniform(1, 80), 1),
        customer_name=f"Bench Customer {index}",
        customer_phone="+91-9000000000",
        customer_email=f"bench{index}@example.com",
        model="pay-per-shipment" if pay_per_shipment else "subscription",
        price=round(rng.uniform(500, 5000), 2) if pay_per_shipment else None,
        urgency=rng.choice(["standard", "urgent", "express"]),
    )


def benchmark(service: DatabaseService, shipments: int, seed: int) -> dict:
    rng = random.Random(seed)
    latencies_ms: list[float] = []
    for index in range(shipments):
        request = synthetic_request(rng, index)
        started = time.perf_counter()
        shipment = service.create_shipment(request, actor="benchmark")
        service.update_shipment_status(shipment.id, ShipmentStatus.ASSIGNED)
        latencies_ms.append((time.perf_counter() - started) * 1000.0)

    journal_path = service.store.journal.path
    started = time.perf_counter()
    replayed = AppStore(journal=StateJournal(db_path=str(journal_path)), seed_fixtures=True)
    replay_ms = (time.perf_counter() - started) * 1000.0
    if len(replayed.get_state().shipments) != len(service.store.get_state().shipments):
        raise RuntimeError("Journal replay diverged from the live store.")

    return {
        "samples": len(latencies_ms),
        "avg_ms": round(statistics.mean(latencies_ms), 4),
        "p50_ms": round(percentile(latencies_ms, 0.50), 4),
        "p95_ms": round(percentile(latencies_ms, 0.95), 4),
        "max_ms": round(max(latencies_ms), 4),
        "min_ms": round(min(latencies_ms), 4),
        "journal_entries": service.store.journal.count(),
        "replay_ms": round(replay_ms, 4),
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Benchmark TrackAS store dispatch and journal replay")
    parser.add_argument("--shipments", type=int, default=500)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--target-p95-ms", type=float, default=50.0)
    parser.add_argument("--output", type=Path, help="Optional output JSON report path")
    args = parser.parse_args()

    configure_logging("WARNING")

    with tempfile.TemporaryDirectory(prefix="trackas-store-bench-") as tmp:
        os.environ["STATE_DB_PATH"] = str(Path(tmp) / "trackas_state.db")
        os.environ["JOURNAL_MAX_ENTRIES"] = str(max(5000, args.shipments * 10))
        get_settings.cache_clear()

        service = DatabaseService(AppStore(journal=StateJournal(), seed_fixtures=True))
        report = benchmark(service, shipments=max(1, args.shipments), seed=args.seed)

    report["target_p95_ms"] = args.target_p95_ms
    report["pass"] = bool(report["p95_ms"] <= args.target_p95_ms)
    print(json.dumps(report, indent=2))

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(json.dumps(report, indent=2), encoding="utf-8")

    if not report["pass"]:
        raise SystemExit(1)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Poll the observer backend and print a network report.

Reads OBSERVER_API_URL (or VITE_API_URL) from the environment / .env.

Usage:
  python -m xandeum_observer.tools.observe_network
  python -m xandeum_observer.tools.observe_network --json
  python -m xandeum_observer.tools.observe_network --watch --sla
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from xandeum_observer.config import get_settings
from xandeum_observer.observer_logging import get_logger
from xandeum_observer.pipeline import NetworkReport, ObserverContext

logger = get_logger(__name__)

SEP = "=" * 60
SEP_THIN = "-" * 60
LEADERBOARD_ROWS = 10
ANOMALY_ROWS = 10


def _print_report(report: NetworkReport, sla_summary: str | None = None) -> None:
    print(SEP)
    print(f"Nodes: {report.total_nodes}  online: {report.online_nodes}")
    b = report.baseline
    print(
        f"Baseline: latency {b.avg_latency:.1f}ms  uptime {b.avg_uptime:.1f}%  "
        f"health {b.avg_health:.1f}"
    )
    h = report.health
    print(f"Health: avg {h.average}  median {h.median}  p95 {h.p95}  {h.distribution}")
    if sla_summary:
        print(sla_summary)
    print(SEP_THIN)

    print(f"Leaderboard (top {LEADERBOARD_ROWS} of {report.leaderboard.total_ranked}):")
    for rep in report.leaderboard.top_nodes[:LEADERBOARD_ROWS]:
        print(f"  #{rep.rank:<3} {rep.node_id[:20]:<20} {rep.total_score:>3} {rep.tier.value}")
    print(SEP_THIN)

    stats = report.anomaly_stats
    print(
        f"Anomalies: {stats.total_anomalies} (critical {stats.critical_count}, "
        f"high {stats.high_count}) on {stats.affected_nodes} node(s)"
    )
    for anomaly in report.anomalies[:ANOMALY_ROWS]:
        print(f"  [{anomaly.severity.value}] {anomaly.node_id[:20]}: {anomaly.description}")

    if report.alerts:
        print(SEP_THIN)
        print(f"Alerts: {len(report.alerts)}")
        for alert in report.alerts:
            print(f"  [{alert.severity.value}] {alert.title}")
    for error in report.errors:
        print(f"! {error}")
    print(SEP)


async def _run(args: argparse.Namespace) -> int:
    async with ObserverContext(get_settings()) as ctx:
        while True:
            report = await ctx.refresh()
            sla_summary = None
            compliance = None
            if args.sla and ctx.last_snapshot is not None and ctx.last_snapshot.nodes:
                compliance = await ctx.sla_compliance(ctx.last_snapshot.nodes, report.generated_at)
                sla_summary = (
                    f"SLA: {compliance.overall_compliance:.1f}% compliant "
                    f"({compliance.warning_nodes} warning, {compliance.violating_nodes} violating)"
                )
            if args.json:
                payload = report.to_dict()
                if compliance is not None:
                    payload["sla"] = compliance.to_dict()
                print(json.dumps(payload, indent=2))
            else:
                _print_report(report, sla_summary)
            if not args.watch:
                return 0
            await asyncio.sleep(ctx.settings.poll_interval_sec)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Xandeum network observer report")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    parser.add_argument("--sla", action="store_true", help="Also run SLA verification per node")
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep polling every OBSERVER_POLL_INTERVAL_SEC seconds",
    )
    args = parser.parse_args(argv)
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("observer_stopped")
        return 130


if __name__ == "__main__":
    sys.exit(main())

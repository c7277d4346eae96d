"""CLI wrapper for re-deciding stored login attempts under a risk policy."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path

from riskgate.config import load_policy, settings
from riskgate.ledger import AuditTrail, record_from_row, replay_assessments
from riskgate.schemas import AttemptRecord


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay attempt records under a risk policy")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--records", help="JSON lines file of AttemptRecord objects")
    source.add_argument("--postgres", action="store_true", help="Read records from the audit table")
    parser.add_argument("--policy", required=True, help="Path to the risk policy YAML to replay with")
    parser.add_argument("--identity", default=None, help="Only replay one identity (audit source)")
    parser.add_argument("--limit", type=int, default=1000, help="Max records from the audit table")
    parser.add_argument("--postgres-url", default=None, help="Override Postgres URL")
    return parser.parse_args()


def read_records(path: Path) -> list[AttemptRecord]:
    with open(path) as f:
        return [AttemptRecord.model_validate_json(line) for line in f if line.strip()]


async def fetch_records(url: str, identity: str | None, limit: int) -> list[AttemptRecord]:
    audit = AuditTrail(url)
    await audit.initialize()
    try:
        rows = await audit.fetch_attempts(identity_key=identity, limit=limit)
    finally:
        await audit.close()
    # Oldest first, like the ledger
    return [record_from_row(row) for row in reversed(rows)]


def main() -> None:
    args = parse_args()
    policy = load_policy(args.policy)

    if args.postgres:
        url = args.postgres_url or settings.postgres_url
        records = asyncio.run(fetch_records(url, args.identity, args.limit))
    else:
        records = read_records(Path(args.records))

    results = replay_assessments(records, policy)
    print(json.dumps(results.to_dict(), indent=2))


if __name__ == "__main__":
    main()

"""Create showingdesk DynamoDB tables and seed sample preferences and handlers.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": "showingdesk-requests", "stream": True},
    {"name": "showingdesk-agent-preferences"},
    {"name": "showingdesk-handlers"},
]

SAMPLE_HANDLERS: list[dict[str, Any]] = [
    {"handlerId": "agent-ava", "displayName": "Ava Brooks", "contactRef": "ava@example.com"},
    {"handlerId": "agent-ben", "displayName": "Ben Ortiz", "contactRef": "ben@example.com"},
    {"handlerId": "agent-cal", "displayName": "Cal Moreno", "contactRef": "cal@example.com"},
    {"handlerId": "agent-dee", "displayName": "Dee Park", "contactRef": "dee@example.com"},
]

SAMPLE_PREFERENCES: list[dict[str, Any]] = [
    {
        "requesterId": "listing-agent-1",
        "defaultResponseTimeoutSeconds": 300,
        "maxEscalationDurationSeconds": 900,
        "candidates": [
            {"handlerId": "agent-ben", "displayName": "Ben Ortiz", "contactRef": "ben@example.com",
             "responseTimeoutSeconds": 300, "rank": 0},
            {"handlerId": "agent-cal", "displayName": "Cal Moreno", "contactRef": "cal@example.com",
             "responseTimeoutSeconds": 300, "rank": 1},
        ],
    },
]


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create all showingdesk tables. Skips if table already exists."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        kwargs: dict[str, Any] = {}
        if defn.get("stream"):
            kwargs["StreamSpecification"] = {
                "StreamEnabled": True,
                "StreamViewType": "NEW_AND_OLD_IMAGES",
            }
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
            **kwargs,
        )
        print(f"  Created table {table_name}")


def seed_sample_data(ddb: Any, suffix: str = "", role: str = "showing_agent") -> None:
    """Seed the handler directory and one requester's preference list."""
    tbl = ddb.Table(f"showingdesk-handlers{suffix}")
    with tbl.batch_writer() as batch:
        for handler in SAMPLE_HANDLERS:
            batch.put_item(Item={
                "PK": f"ROLE#{role}", "SK": f"HANDLER#{handler['handlerId']}",
                "role": role, **handler,
            })
    print(f"  Seeded {len(SAMPLE_HANDLERS)} handlers")

    tbl = ddb.Table(f"showingdesk-agent-preferences{suffix}")
    with tbl.batch_writer() as batch:
        for prefs in SAMPLE_PREFERENCES:
            batch.put_item(Item={
                "PK": f"REQUESTER#{prefs['requesterId']}", "SK": "PREFERENCES", **prefs,
            })
    print(f"  Seeded {len(SAMPLE_PREFERENCES)} preference lists")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for showingdesk")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--role", default="showing_agent", help="Directory role for seeded handlers")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    print("Seeding data...")
    seed_sample_data(ddb, suffix=args.table_suffix, role=args.role)

    print("Done!")


if __name__ == "__main__":
    main()

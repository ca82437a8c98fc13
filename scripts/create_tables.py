"""Create the ReviewFlow DynamoDB tables and optionally seed a sample workflow.

Usage:
    python scripts/create_tables.py --endpoint-url http://localhost:4566
    python scripts/create_tables.py --table-suffix -dev --sample-workspace w1
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

from reviewflow.engine.definitions import WorkflowDefinitionStore
from reviewflow.models.workflow import StepAssignee, WorkflowStepInput
from reviewflow.persistence.dynamodb_backend import (
    REVIEWS_TABLE,
    WORKFLOWS_TABLE,
    DynamoDBWorkflowRepository,
)

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": WORKFLOWS_TABLE},
    {"name": REVIEWS_TABLE},
]


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create both tables. Skips tables that already exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
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
        )
        print(f"  Created table {table_name}")


def seed_sample_workflow(workspace_id: str, suffix: str = "", region: str = "us-east-1",
                         endpoint_url: str | None = None) -> str:
    """Store a two-step peer/lead workflow and return its ID."""
    repo = DynamoDBWorkflowRepository(table_suffix=suffix, region=region, endpoint_url=endpoint_url)
    store = WorkflowDefinitionStore(repo)
    workflow = store.create_workflow(
        workspace_id,
        "Peer and lead review",
        [
            WorkflowStepInput(index=0, name="Peer review", sla_hours=24,
                              assignees=[StepAssignee(assignee_id="peer")]),
            WorkflowStepInput(index=1, name="Lead approval", sla_hours=48,
                              assignees=[StepAssignee(assignee_id="lead")]),
        ],
        description="Sample workflow seeded by create_tables.py",
    )
    return workflow.id


def main() -> None:
    parser = argparse.ArgumentParser(description="Create DynamoDB tables for ReviewFlow")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--sample-workspace", default=None, help="Seed a sample workflow into this workspace")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    if args.sample_workspace:
        workflow_id = seed_sample_workflow(
            args.sample_workspace, suffix=args.table_suffix,
            region=args.region, endpoint_url=args.endpoint_url,
        )
        print(f"  Seeded sample workflow {workflow_id}")

    print("Done!")


if __name__ == "__main__":
    main()

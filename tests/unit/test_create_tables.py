"""Tests for the table creation script."""

from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

from reviewflow.persistence.dynamodb_backend import DynamoDBWorkflowRepository

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from create_tables import create_tables, seed_sample_workflow  # noqa: E402


@pytest.fixture
def ddb():
    with mock_aws():
        yield boto3.resource("dynamodb", region_name="us-east-1")


class TestCreateTables:
    def test_creates_both_tables(self, ddb):
        create_tables(ddb, suffix="-test")
        tables = boto3.client("dynamodb", region_name="us-east-1").list_tables()["TableNames"]
        assert sorted(tables) == ["reviewflow-reviews-test", "reviewflow-workflows-test"]

    def test_idempotent_skips_existing(self, ddb):
        create_tables(ddb, suffix="-test")
        create_tables(ddb, suffix="-test")  # should not raise
        assert len(boto3.client("dynamodb", region_name="us-east-1").list_tables()["TableNames"]) == 2


class TestSeedSampleWorkflow:
    def test_seeds_two_step_workflow(self, ddb):
        create_tables(ddb, suffix="-test")
        workflow_id = seed_sample_workflow("w1", suffix="-test")
        workflow = DynamoDBWorkflowRepository(table_suffix="-test").get(workflow_id)
        assert [s.name for s in workflow.steps] == ["Peer review", "Lead approval"]
        assert workflow.steps[0].sla_hours == 24

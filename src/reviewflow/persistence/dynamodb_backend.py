"""DynamoDB backends implementing the workflow and review request repositories."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

from reviewflow.core.exceptions import CacheError, ConcurrentModificationError, PersistenceError
from reviewflow.core.protocols import ICacheBackend
from reviewflow.models.events import ReviewEvent
from reviewflow.models.review import (
    Assignment,
    AssignmentStatus,
    ChangeRequestRecord,
    RequestUpdate,
    ReviewRequest,
    ReviewStatus,
)
from reviewflow.models.workflow import Workflow

logger = logging.getLogger(__name__)

WORKFLOWS_TABLE = "reviewflow-workflows"
REVIEWS_TABLE = "reviewflow-reviews"

# DynamoDB limit for one TransactWriteItems call.
MAX_TRANSACT_ITEMS = 100

_serializer = TypeSerializer()


def _to_dynamodb(obj: Any) -> Any:
    """Convert JSON-mode floats to Decimal for DynamoDB."""
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_dynamodb(i) for i in obj]
    return obj


def _decode_decimals(item: dict[str, Any]) -> dict[str, Any]:
    """Convert Decimal values in a DynamoDB item to int/float."""
    out: dict[str, Any] = {}
    for k, v in item.items():
        if isinstance(v, Decimal):
            out[k] = int(v) if v == int(v) else float(v)
        elif isinstance(v, dict):
            out[k] = _decode_decimals(v)
        elif isinstance(v, list):
            out[k] = [
                _decode_decimals(i) if isinstance(i, dict)
                else (int(i) if isinstance(i, Decimal) and i == int(i) else float(i) if isinstance(i, Decimal) else i)
                for i in v
            ]
        else:
            out[k] = v
    return out


def _epoch(ts: datetime) -> Decimal:
    return Decimal(str(ts.timestamp()))


def _stamp(ts: datetime) -> str:
    """Sortable sort-key fragment."""
    return ts.strftime("%Y%m%dT%H%M%S%f")


def _item(model: Any, pk: str, sk: str, **extra: Any) -> dict[str, Any]:
    body = _to_dynamodb(model.model_dump(mode="json"))
    body.update({"PK": pk, "SK": sk, **extra})
    return body


def _assignment_item(a: Assignment) -> dict[str, Any]:
    extra: dict[str, Any] = {}
    if a.due_at is not None:
        extra["dueEpoch"] = _epoch(a.due_at)
    return _item(a, f"REQUEST#{a.request_id}", f"ASSIGNMENT#{a.id}", **extra)


def _event_item(e: ReviewEvent) -> dict[str, Any]:
    owner = f"REQUEST#{e.request_id}" if e.request_id else f"WORKFLOW#{e.workflow_id}"
    return _item(e, owner, f"EVENT#{_stamp(e.created_at)}#{e.id}")


def _change_item(c: ChangeRequestRecord) -> dict[str, Any]:
    return _item(c, f"REQUEST#{c.request_id}", f"CHANGE#{_stamp(c.created_at)}#{c.id}")


def _typed(item: dict[str, Any]) -> dict[str, Any]:
    return {k: _serializer.serialize(v) for k, v in item.items()}


class _Tables:
    """Shared boto3 resource handling for both repositories."""

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    def _name(self, base: str) -> str:
        return f"{base}{self._table_suffix}"

    def _table(self, base: str):
        return self._ddb.Table(self._name(base))

    def _query(self, table_base: str, pk: str, sk_prefix: str | None = None) -> list[dict[str, Any]]:
        """Query all items with a partition key, following pagination."""
        tbl = self._table(table_base)
        condition = Key("PK").eq(pk)
        if sk_prefix:
            condition = condition & Key("SK").begins_with(sk_prefix)
        kwargs: dict[str, Any] = {"KeyConditionExpression": condition}
        items: list[dict[str, Any]] = []
        try:
            while True:
                resp = tbl.query(**kwargs)
                items.extend(_decode_decimals(i) for i in resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    return items
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB query failed for PK={pk!r}: {exc}") from exc

    def _get_item(self, table_base: str, pk: str, sk: str) -> dict[str, Any] | None:
        """Get a single item by PK + SK. Returns None if not found."""
        try:
            resp = self._table(table_base).get_item(Key={"PK": pk, "SK": sk})
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB get_item failed for PK={pk!r}: {exc}") from exc
        item = resp.get("Item")
        return _decode_decimals(item) if item else None


class DynamoDBWorkflowRepository(_Tables):
    """IWorkflowRepository backed by DynamoDB with an optional Redis cache.

    Workflows are immutable after creation, so cached copies never go stale.
    """

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None, cache: ICacheBackend | None = None,
                 cache_ttl: int = 3600) -> None:
        super().__init__(table_suffix=table_suffix, region=region, endpoint_url=endpoint_url)
        self._cache = cache
        self._cache_ttl = cache_ttl

    def add(self, workflow: Workflow) -> None:
        tbl = self._table(WORKFLOWS_TABLE)
        try:
            tbl.put_item(
                Item=_item(workflow, f"WORKFLOW#{workflow.id}", "DEFINITION"),
                ConditionExpression="attribute_not_exists(PK)",
            )
            tbl.put_item(
                Item=_item(workflow, f"WORKSPACE#{workflow.workspace_id}", f"WORKFLOW#{workflow.id}"),
            )
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB put failed for workflow {workflow.id!r}: {exc}") from exc

    def get(self, workflow_id: str) -> Optional[Workflow]:
        cache_key = f"workflow:{workflow_id}"

        if self._cache is not None:
            try:
                cached = self._cache.get(cache_key)
            except CacheError:
                logger.warning("workflow_cache_read_failed", extra={"workflow_id": workflow_id}, exc_info=True)
                cached = None
            if cached is not None:
                return Workflow.model_validate_json(cached)

        item = self._get_item(WORKFLOWS_TABLE, f"WORKFLOW#{workflow_id}", "DEFINITION")
        if item is None:
            return None
        workflow = Workflow.model_validate(item)

        if self._cache is not None:
            try:
                self._cache.setex(cache_key, self._cache_ttl, workflow.model_dump_json())
            except CacheError:
                logger.warning("workflow_cache_write_failed", extra={"workflow_id": workflow_id}, exc_info=True)

        return workflow

    def list_by_workspace(self, workspace_id: str) -> list[Workflow]:
        items = self._query(WORKFLOWS_TABLE, f"WORKSPACE#{workspace_id}", "WORKFLOW#")
        return [Workflow.model_validate(i) for i in items]


class DynamoDBReviewRequestRepository(_Tables):
    """IReviewRequestRepository backed by a single DynamoDB table.

    Layout, all under ``PK=REQUEST#{id}``: ``SK=STATE`` holds the request with
    its ``version``; ``ASSIGNMENT#``, ``CHANGE#`` and ``EVENT#`` items hang off
    it. ``PK=WORKSPACE#{ws}, SK=REQUEST#{id}`` indexes requests per workspace.

    ``commit`` writes state, assignments and change records in one
    transaction; the update's events follow in a batch once it lands.
    """

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        super().__init__(table_suffix=table_suffix, region=region, endpoint_url=endpoint_url)
        self._client = self._ddb.meta.client

    def get(self, request_id: str) -> Optional[ReviewRequest]:
        item = self._get_item(REVIEWS_TABLE, f"REQUEST#{request_id}", "STATE")
        return ReviewRequest.model_validate(item) if item else None

    def list_by_workspace(
        self, workspace_id: str, status: Optional[ReviewStatus] = None
    ) -> list[ReviewRequest]:
        index = self._query(REVIEWS_TABLE, f"WORKSPACE#{workspace_id}", "REQUEST#")
        out: list[ReviewRequest] = []
        for entry in index:
            req = self.get(entry["request_id"])
            if req is not None and (status is None or req.status == status):
                out.append(req)
        return sorted(out, key=lambda r: r.created_at)

    def list_assignments(
        self, request_id: str, step_index: Optional[int] = None
    ) -> list[Assignment]:
        items = self._query(REVIEWS_TABLE, f"REQUEST#{request_id}", "ASSIGNMENT#")
        assignments = [Assignment.model_validate(i) for i in items]
        if step_index is not None:
            assignments = [a for a in assignments if a.step_index == step_index]
        return sorted(assignments, key=lambda a: (a.step_index, a.cycle, a.created_at, a.assignee_id))

    def list_change_requests(self, request_id: str) -> list[ChangeRequestRecord]:
        items = self._query(REVIEWS_TABLE, f"REQUEST#{request_id}", "CHANGE#")
        return [ChangeRequestRecord.model_validate(i) for i in items]

    def list_events(self, request_id: str) -> list[ReviewEvent]:
        items = self._query(REVIEWS_TABLE, f"REQUEST#{request_id}", "EVENT#")
        return [ReviewEvent.model_validate(i) for i in items]

    def commit(self, update: RequestUpdate) -> None:
        table = self._name(REVIEWS_TABLE)
        req = update.request
        state: dict[str, Any] = {
            "TableName": table,
            "Item": _typed(_item(req, f"REQUEST#{req.id}", "STATE")),
        }
        if update.expected_version == 0:
            state["ConditionExpression"] = "attribute_not_exists(PK)"
        else:
            state["ConditionExpression"] = "#v = :expected"
            state["ExpressionAttributeNames"] = {"#v": "version"}
            state["ExpressionAttributeValues"] = {
                ":expected": _serializer.serialize(update.expected_version),
            }

        items: list[dict[str, Any]] = [{"Put": state}]
        if update.expected_version == 0:
            index = {"PK": f"WORKSPACE#{req.workspace_id}", "SK": f"REQUEST#{req.id}", "request_id": req.id}
            items.append({"Put": {"TableName": table, "Item": _typed(index)}})
        items.extend({"Put": {"TableName": table, "Item": _typed(_assignment_item(a))}} for a in update.assignments)
        items.extend({"Put": {"TableName": table, "Item": _typed(_change_item(c))}} for c in update.change_requests)
        if len(items) > MAX_TRANSACT_ITEMS:
            raise PersistenceError(
                f"Commit for request {req.id!r} needs {len(items)} writes, limit is {MAX_TRANSACT_ITEMS}"
            )

        try:
            self._client.transact_write_items(TransactItems=items)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in ("TransactionCanceledException", "ConditionalCheckFailedException"):
                reasons = exc.response.get("CancellationReasons", [])
                if not reasons or reasons[0].get("Code") == "ConditionalCheckFailed":
                    raise ConcurrentModificationError(req.id, update.expected_version) from exc
            raise PersistenceError(f"DynamoDB commit failed for request {req.id!r}: {exc}") from exc

        self._append_events(req.id, update.events)

    def list_due_assignments(self, now: datetime) -> list[Assignment]:
        tbl = self._table(REVIEWS_TABLE)
        kwargs: dict[str, Any] = {
            "FilterExpression": (
                Attr("SK").begins_with("ASSIGNMENT#")
                & Attr("status").eq(AssignmentStatus.PENDING.value)
                & Attr("dueEpoch").lte(_epoch(now))
            ),
        }
        due: list[Assignment] = []
        try:
            while True:
                resp = tbl.scan(**kwargs)
                due.extend(Assignment.model_validate(_decode_decimals(i)) for i in resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    return due
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB scan for due assignments failed: {exc}") from exc

    def transition_assignment(
        self,
        assignment: Assignment,
        expected: AssignmentStatus,
        new: AssignmentStatus,
        at: Optional[datetime] = None,
    ) -> bool:
        escalated_at = at.isoformat() if new == AssignmentStatus.ESCALATED and at else None
        try:
            self._table(REVIEWS_TABLE).update_item(
                Key={"PK": f"REQUEST#{assignment.request_id}", "SK": f"ASSIGNMENT#{assignment.id}"},
                UpdateExpression="SET #s = :new, escalated_at = :at",
                ConditionExpression="#s = :expected",
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={
                    ":new": new.value,
                    ":expected": expected.value,
                    ":at": escalated_at,
                },
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                logger.debug(
                    "assignment_transition_skipped",
                    extra={"assignment_id": assignment.id, "expected": expected.value},
                )
                return False
            raise PersistenceError(f"DynamoDB update failed for assignment {assignment.id!r}: {exc}") from exc
        return True

    def _append_events(self, request_id: str, events: list[ReviewEvent]) -> None:
        """Write audit events once the state change has landed.

        Kept out of the transaction, which is capped at
        MAX_TRANSACT_ITEMS. The commit is not rolled back if this fails.
        """
        if not events:
            return
        try:
            with self._table(REVIEWS_TABLE).batch_writer() as batch:
                for event in events:
                    batch.put_item(Item=_event_item(event))
        except ClientError:
            logger.error(
                "review_events_write_failed",
                extra={"request_id": request_id, "events": len(events)},
                exc_info=True,
            )

    def append_event(self, event: ReviewEvent) -> None:
        try:
            self._table(REVIEWS_TABLE).put_item(Item=_event_item(event))
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB put failed for event {event.id!r}: {exc}") from exc

"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from reviewflow.core.config import AppSettings
from reviewflow.core.protocols import IReviewRequestRepository, IWorkflowRepository
from reviewflow.persistence.dynamodb_backend import (
    DynamoDBReviewRequestRepository,
    DynamoDBWorkflowRepository,
)
from reviewflow.persistence.memory_backend import (
    MemoryReviewRequestRepository,
    MemoryWorkflowRepository,
)
from reviewflow.persistence.redis_backend import RedisCacheBackend


def create_persistence(
    settings: AppSettings | None = None,
) -> tuple[IWorkflowRepository, IReviewRequestRepository]:
    """Create wired-up repositories from application settings.

    Returns:
        Tuple of (workflow_repository, review_request_repository).
    """
    if settings is None:
        settings = AppSettings()

    if settings.engine.backend == "memory":
        return MemoryWorkflowRepository(), MemoryReviewRequestRepository()

    cache = None
    if settings.redis.enabled:
        cache = RedisCacheBackend.from_config(settings.redis)

    workflows = DynamoDBWorkflowRepository(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        cache=cache,
        cache_ttl=settings.redis.workflow_ttl,
    )
    requests = DynamoDBReviewRequestRepository(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )
    return workflows, requests

"""Run one escalation sweep; meant to be scheduled by cron.

Runs in-process against the configured backend (REVIEWFLOW_* env vars), or
POSTs to a running API with --base-url.

Usage:
    python scripts/run_escalations.py
    python scripts/run_escalations.py --base-url http://localhost:8000 --workspace-id w1
"""

from __future__ import annotations

import argparse
import logging
import sys

import httpx

from reviewflow.core.config import AppSettings
from reviewflow.core.logging import configure_logging
from reviewflow.engine import create_services

logger = logging.getLogger("reviewflow.scripts.run_escalations")


def run_local(settings: AppSettings) -> int:
    services = create_services(settings)
    report = services.escalations.sweep()
    logger.info("escalations_done", extra={"escalated": report.escalated_count, "failed": len(report.failed)})
    print(f"Escalations: {report.escalated_count} escalated, {len(report.failed)} failed")
    return 1 if report.failed else 0


def run_remote(base_url: str, user_id: str, workspace_id: str, token: str | None) -> int:
    headers = {"x-user-id": user_id, "x-workspace-id": workspace_id}
    if token:
        headers["authorization"] = f"Bearer {token}"
    try:
        response = httpx.post(f"{base_url.rstrip('/')}/reviews/escalate", headers=headers, timeout=30.0)
    except httpx.HTTPError as exc:
        logger.error("escalation_cron_unreachable", extra={"base_url": base_url, "error": str(exc)})
        return 1
    if response.is_error:
        logger.error("escalation_cron_failed", extra={"status": response.status_code, "body": response.text})
        return 1
    print(f"Escalations: {response.json()}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a ReviewFlow escalation sweep")
    parser.add_argument("--base-url", default=None, help="API base URL; omit to sweep in-process")
    parser.add_argument("--user-id", default="system-cron", help="Caller identity for the API")
    parser.add_argument("--workspace-id", default="system", help="Workspace header for the API guard")
    parser.add_argument("--token", default=None, help="Bearer token for the API")
    args = parser.parse_args()

    settings = AppSettings()
    configure_logging(settings.log_level)

    if args.base_url:
        code = run_remote(args.base_url, args.user_id, args.workspace_id, args.token)
    else:
        code = run_local(settings)
    sys.exit(code)


if __name__ == "__main__":
    main()

"""Tests for the escalation cron script."""

from __future__ import annotations

import sys
from pathlib import Path

import httpx

from reviewflow.core.config import AppSettings

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

import run_escalations  # noqa: E402


def test_run_local_with_nothing_due(capsys):
    assert run_escalations.run_local(AppSettings()) == 0
    assert "0 escalated" in capsys.readouterr().out


def test_run_remote_posts_sweep(monkeypatch):
    calls = []

    def fake_post(url, headers, timeout):
        calls.append((url, headers))
        return httpx.Response(200, json={"escalated": 2, "failed": []}, request=httpx.Request("POST", url))

    monkeypatch.setattr(run_escalations.httpx, "post", fake_post)
    assert run_escalations.run_remote("http://api.test/", "cron", "w1", "tok") == 0
    url, headers = calls[0]
    assert url == "http://api.test/reviews/escalate"
    assert headers["authorization"] == "Bearer tok"
    assert headers["x-workspace-id"] == "w1"


def test_run_remote_reports_http_error(monkeypatch):
    def fake_post(url, headers, timeout):
        return httpx.Response(403, json={"detail": "denied"}, request=httpx.Request("POST", url))

    monkeypatch.setattr(run_escalations.httpx, "post", fake_post)
    assert run_escalations.run_remote("http://api.test", "cron", "w1", None) == 1


def test_run_remote_unreachable(monkeypatch):
    def fake_post(url, headers, timeout):
        raise httpx.ConnectError("refused")

    monkeypatch.setattr(run_escalations.httpx, "post", fake_post)
    assert run_escalations.run_remote("http://api.test", "cron", "w1", None) == 1

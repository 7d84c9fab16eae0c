"""Unit tests for shared httpx client pool.

Covers:
- Same key (base_url, purpose) returns the same instance.
- Different purpose yields different instances.
- A closed client is replaced on next use.
"""
from __future__ import annotations

from cody_agent.base.http import close_all_clients, get_httpx_client


def setup_function(_):
    # Ensure a clean slate for each test
    close_all_clients()


def teardown_function(_):
    close_all_clients()


def test_same_key_returns_same_instance():
    c1 = get_httpx_client(None, purpose="chat")
    c2 = get_httpx_client(None, purpose="chat")
    assert c1 is c2, "Expected pooled client instances to be identical for same key"  # nosec B101


def test_different_purpose_returns_different_instances():
    c1 = get_httpx_client("http://llm.test/v1", purpose="chat")
    c2 = get_httpx_client("http://llm.test/v1", purpose="models")
    assert c1 is not c2, "Different purposes should not share the same client instance"  # nosec B101


def test_closed_client_is_replaced():
    c1 = get_httpx_client(None, purpose="chat")
    close_all_clients()
    c2 = get_httpx_client(None, purpose="chat")
    assert c1.is_closed and not c2.is_closed and c1 is not c2  # nosec B101

"""
Shared pytest fixtures.

No test talks to Notion, Gemini or SMTP: every outbound call is patched.
Secrets and database IDs are pinned on renovation_hub.config per test so the
suite does not depend on the developer's environment.
"""

import pytest

from renovation_hub import config

UPDATE_PASSWORD = "let-me-in"
WEBHOOK_SECRET = "hook-secret"


@pytest.fixture(autouse=True)
def pinned_config(monkeypatch):
    """Known secrets and database IDs for every test."""
    monkeypatch.setattr(config, "NOTION_API_KEY", "secret_test")
    monkeypatch.setattr(config, "UPDATE_PASSWORD", UPDATE_PASSWORD)
    monkeypatch.setattr(config, "WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(config, "GEMINI_API_KEY", "gemini-test-key")
    monkeypatch.setattr(config, "DASHBOARD_CONFIG_PATH", None)
    monkeypatch.setattr(config, "DEDUPE_MARKER_PROPERTY", "Merged From")
    for name in (
        "NOTION_BUDGET_DB_ID",
        "NOTION_ACTUALS_DB_ID",
        "MILESTONES_DB_ID",
        "DELIVERABLES_DB_ID",
        "VENDOR_REGISTRY_DB_ID",
        "PAYMENTS_DB_ID",
        "NOTION_WORK_PACKAGES_DB_ID",
        "SOURCING_MASTER_LIST_DB_ID",
        "QUOTATIONS_HUB_ID",
        "ACTIVITY_LOG_DB_ID",
    ):
        monkeypatch.setattr(config, name, f"db-{name.lower()}")


@pytest.fixture()
def client():
    """Flask test client."""
    from app import app as flask_app
    flask_app.config["TESTING"] = True
    return flask_app.test_client()


@pytest.fixture()
def webhook_headers():
    return {"Authorization": f"Bearer {WEBHOOK_SECRET}"}


@pytest.fixture()
def small_gates():
    """A two-gate checklist small enough to reason about in assertions."""
    return config.DashboardConfig(required_by_gate={
        "G1 Concept": ["MOODBOARD", "PROPOSED RENOVATION FLOOR PLAN"],
        "G2 Schematic": [],
        "G3 Design Development": ["DOORS AND WINDOWS"],
    })

"""
Environment configuration and the dashboard configuration struct.

Secrets and Notion database IDs come from the environment. The gate checklist
and the budget constants live in DashboardConfig so they can be swapped from a
JSON file without touching code.
"""

import os
import json
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """A required secret or database ID is not configured."""


# =============================================================================
# ENVIRONMENT
# =============================================================================

NOTION_API_KEY = os.environ.get('NOTION_API_KEY')
NOTION_VERSION = '2022-06-28'

# Notion Database IDs (missing ones degrade to empty result sets)
NOTION_BUDGET_DB_ID = os.environ.get('NOTION_BUDGET_DB_ID')
NOTION_ACTUALS_DB_ID = os.environ.get('NOTION_ACTUALS_DB_ID')
MILESTONES_DB_ID = os.environ.get('MILESTONES_DB_ID')
DELIVERABLES_DB_ID = os.environ.get('DELIVERABLES_DB_ID')
VENDOR_REGISTRY_DB_ID = os.environ.get('VENDOR_REGISTRY_DB_ID')
PAYMENTS_DB_ID = os.environ.get('PAYMENTS_DB_ID')
NOTION_WORK_PACKAGES_DB_ID = os.environ.get('NOTION_WORK_PACKAGES_DB_ID')
SOURCING_MASTER_LIST_DB_ID = os.environ.get('SOURCING_MASTER_LIST_DB_ID')
QUOTATIONS_HUB_ID = os.environ.get('QUOTATIONS_HUB_ID')
ACTIVITY_LOG_DB_ID = os.environ.get('ACTIVITY_LOG_DB_ID')

# Gemini
GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY') or os.environ.get('GOOGLE_API_KEY')
GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-flash')

# Shared secrets
UPDATE_PASSWORD = os.environ.get('UPDATE_PASSWORD')
WEBHOOK_SECRET = os.environ.get('WEBHOOK_SECRET')

# Email
GMAIL_USER = os.environ.get('GMAIL_USER')
GMAIL_APP_PASSWORD = os.environ.get('GMAIL_APP_PASSWORD')
SMTP_HOST = os.environ.get('SMTP_HOST', 'smtp.gmail.com')
SMTP_PORT = int(os.environ.get('SMTP_PORT', 587))
NOTIFY_RECIPIENTS = [
    addr.strip() for addr in os.environ.get('NOTIFY_RECIPIENTS', '').split(',') if addr.strip()
]

# Rich-text property on a surviving deliverable that records merged submission IDs.
# Set to an empty string to disable the marker.
DEDUPE_MARKER_PROPERTY = os.environ.get('DEDUPE_MARKER_PROPERTY', 'Merged From')

DASHBOARD_CONFIG_PATH = os.environ.get('DASHBOARD_CONFIG_PATH')


# =============================================================================
# DASHBOARD CONFIGURATION
# =============================================================================

REQUIRED_BY_GATE = {
    "G0 Pre Construction": ["Move Out to Temporary Residence"],
    "G1 Concept": ["MOODBOARD", "PROPOSED RENOVATION FLOOR PLAN"],
    "G2 Schematic": [],
    "G3 Design Development": [
        "DOORS AND WINDOWS",
        "Construction Drawings",
        "MEP Drawings",
        "Interior Design Plans",
        "Schedules",
        "Finishes",
    ],
    "G4 Authority Submission": [
        "RENOVATION PERMIT",
        "Structural Drawings",
        "BQ Complete",
        "Quotation Package Ready",
    ],
    "G5 Construction Documentation": [
        "Contractor Awarded",
        "Tender Package Issued",
        "Site Mobilization Complete",
        "Demolition Complete Certificate",
        "Structural Works Complete",
        "Carpentry Complete",
        "Finishes Complete",
        "MEP Rough-in Complete",
        "MEP Final Complete",
        "Plumbing Complete",
        "Electrical Complete",
        "HVAC Complete",
        "Painting Complete",
        "Tiling Complete",
        "Joinery Complete",
        "Hardware Installation Complete",
        "Testing & Commissioning Complete",
        "Defects Rectification Complete",
        "Site Cleanup Complete",
        "Pre-handover Inspection Complete",
    ],
    "G6 Design Close-out": ["Final Inspection Complete", "Handover Certificate"],
}


@dataclass
class DashboardConfig:
    """Gate checklist and budget constants shared by the reconciler and aggregator."""

    required_by_gate: dict = field(default_factory=lambda: {g: list(d) for g, d in REQUIRED_BY_GATE.items()})
    shipping_addend: float = 27900.0
    discount_rate: float = 0.05
    contingency_rate: float = 0.10
    construction_start_date: str = '2025-11-22'
    forecast_months: int = 4


def load_dashboard_config(path=None):
    """
    Build the dashboard configuration.

    Args:
        path: JSON file overriding any DashboardConfig field. Defaults to
            DASHBOARD_CONFIG_PATH; when neither is set the built-in table is used.

    Returns:
        DashboardConfig
    """
    path = path or DASHBOARD_CONFIG_PATH
    if not path:
        return DashboardConfig()

    with open(path, encoding='utf-8') as fh:
        overrides = json.load(fh)

    known = DashboardConfig.__dataclass_fields__
    unknown = sorted(k for k in overrides if k not in known)
    if unknown:
        logger.warning(f"Ignoring unknown dashboard config keys: {unknown}")

    cfg = DashboardConfig(**{k: v for k, v in overrides.items() if k in known})
    logger.info(f"Loaded dashboard config from {path} ({len(cfg.required_by_gate)} gates)")
    return cfg

"""
Password-gated mutations from the dashboard.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from . import config
from . import schema
from . import properties
from . import notion_api
from .deliverables import (
    APPROVED,
    CONSTRUCTION_CERTIFICATE,
    MISSING,
    is_required,
    normalize_key,
    gate_of,
)

logger = logging.getLogger(__name__)


class InvalidRequest(ValueError):
    """The request payload is missing or has an invalid field (HTTP 400)."""


def _today():
    return datetime.now(timezone.utc).date().isoformat()


def mark_payment_paid(page_id, today=None):
    if not page_id:
        raise InvalidRequest("Missing 'pageId'")

    notion_api.update_record(page_id, {
        "Status": properties.status_value("Paid"),
        "PaidDate": properties.date_value(today or _today()),
    })
    logger.info(f"Payment {page_id} marked as paid")
    return {"success": True, "message": "Payment marked as paid."}


def _approval_update(record):
    if schema.text(record, 'deliverable', 'category') == CONSTRUCTION_CERTIFICATE:
        return {"Review Status": properties.select_value(APPROVED)}
    return {"Status": properties.select_value(APPROVED)}


def mark_gate_approved(gate_name, cfg):
    """
    Approve every required deliverable submitted under a gate.

    Returns:
        dict with success flag, message and the number of pages updated.
    """
    if not gate_name:
        raise InvalidRequest("Missing 'gateName'")

    gate = next((g for g in cfg.required_by_gate if normalize_key(g) == normalize_key(gate_name)), None)
    if gate is None:
        raise InvalidRequest(f"Unknown gate: {gate_name}")

    records = notion_api.query_all(config.DELIVERABLES_DB_ID)
    to_update = [
        r for r in records
        if normalize_key(gate_of(r)) == normalize_key(gate)
        and is_required(gate, schema.text(r, 'deliverable', 'title'), cfg.required_by_gate)
    ]

    if to_update:
        with ThreadPoolExecutor(max_workers=min(len(to_update), 8)) as executor:
            futures = [
                executor.submit(notion_api.update_record, r['id'], _approval_update(r))
                for r in to_update
            ]
        # Surface the first failure after every update has settled
        for future in futures:
            future.result()

    logger.info(f"Approved {len(to_update)} deliverables for {gate}")
    return {
        "success": True,
        "message": f"All deliverables for {gate} approved.",
        "updated": len(to_update),
    }


def create_task(payload):
    """
    Create a deliverable record from the dashboard task form.

    Required: title. Optional: gate, status, dueDate, priority, category.
    """
    title = (payload.get('title') or '').strip()
    if not title:
        raise InvalidRequest("Missing 'title'")
    if not config.DELIVERABLES_DB_ID:
        raise config.ConfigurationError('DELIVERABLES_DB_ID is not configured.')

    props = {
        "Select Deliverable:": properties.title_value(title),
        "Status": properties.select_value(payload.get('status') or MISSING),
    }
    if payload.get('gate'):
        props["Gate"] = properties.multi_select_value([payload['gate']])
    if payload.get('dueDate'):
        props["Target Due"] = properties.date_value(payload['dueDate'])
    if payload.get('priority'):
        props["Priority"] = properties.select_value(payload['priority'])
    if payload.get('category'):
        props["Category"] = properties.select_value(payload['category'])
    if payload.get('comments'):
        props["Comments"] = properties.rich_text_value(payload['comments'])

    page = notion_api.create_record(config.DELIVERABLES_DB_ID, props)
    logger.info(f"Created deliverable task '{title}': {page.get('id')}")
    return {"success": True, "id": page.get('id'), "url": page.get('url')}

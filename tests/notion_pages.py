"""Builders for Notion page and property payloads used across the test suite."""

import requests
from unittest.mock import MagicMock


# ── Property values ──────────────────────────────────────────────────────────


def title(text):
    return {"type": "title", "title": [{"plain_text": text}] if text else []}


def rich_text(*segments):
    return {"type": "rich_text", "rich_text": [{"plain_text": s} for s in segments]}


def select(name):
    return {"type": "select", "select": {"name": name} if name else None}


def status(name):
    return {"type": "status", "status": {"name": name}}


def multi_select(*values):
    return {"type": "multi_select", "multi_select": [{"name": v} for v in values]}


def number(value):
    return {"type": "number", "number": value}


def date(start):
    return {"type": "date", "date": {"start": start} if start else None}


def checkbox(value):
    return {"type": "checkbox", "checkbox": value}


def relation(*ids):
    return {"type": "relation", "relation": [{"id": i} for i in ids]}


def people(*names):
    return {"type": "people", "people": [{"name": n} for n in names]}


def files(*names):
    return {"type": "files", "files": [file_ref(n) for n in names]}


def file_ref(name):
    return {"name": name, "type": "external", "external": {"url": f"https://files.example/{name}"}}


# ── Pages ────────────────────────────────────────────────────────────────────


def make_page(props, page_id="page-1", **extra):
    """A Notion page dict with the given properties map."""
    page = {
        "object": "page",
        "id": page_id,
        "url": f"https://www.notion.so/{page_id}",
        "archived": False,
        "created_time": "2025-10-01T00:00:00.000Z",
        "properties": props,
    }
    page.update(extra)
    return page


def deliverable_page(page_id, deliverable_type, gate, status_name="", category="Design Document", **props):
    all_props = {
        "Select Deliverable:": title(deliverable_type),
        "Gate": multi_select(gate) if gate else multi_select(),
        "Status": select(status_name),
        "Category": select(category),
    }
    all_props.update(props)
    return make_page(all_props, page_id=page_id)


def payment_page(page_id, amount, status_name, due=None, paid=None, payment_for="Deposit"):
    return make_page({
        "Payment For": title(payment_for),
        "Amount (RM)": number(amount),
        "Status": select(status_name),
        "DueDate": date(due),
        "PaidDate": date(paid),
    }, page_id=page_id)


# ── HTTP ─────────────────────────────────────────────────────────────────────


def http_response(status_code=200, json_data=None, text=""):
    """A requests.Response stand-in whose raise_for_status matches the status code."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data if json_data is not None else {}
    response.text = text
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error", response=response
        )
    return response


def http_error(status_code, text=""):
    return requests.HTTPError(f"{status_code} Error", response=http_response(status_code, text=text))

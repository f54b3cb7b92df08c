"""
Thin Notion REST client.

Every call re-fetches from Notion; nothing is cached between requests.
"""

import logging

import requests

from . import config

logger = logging.getLogger(__name__)

NOTION_BASE_URL = "https://api.notion.com/v1"
PAGE_SIZE = 100


def notion_headers():
    return {
        "Authorization": f"Bearer {config.NOTION_API_KEY}",
        "Content-Type": "application/json",
        "Notion-Version": config.NOTION_VERSION,
    }


def _raise_for_status(response, context):
    try:
        response.raise_for_status()
    except requests.HTTPError:
        logger.error(f"Notion {context} failed: {response.status_code} {response.text}")
        raise


def query_all(database_id, query=None):
    """
    Query a Notion database, following pagination until exhausted.

    Args:
        database_id: Database to query. When not configured, returns [] so the
            dashboard can render without that source.
        query: Optional request body (filter, sorts).

    Returns:
        list of page dicts from every result page, in order.
    """
    if not database_id:
        logger.warning("Query skipped for missing database ID")
        return []

    url = f"{NOTION_BASE_URL}/databases/{database_id}/query"
    body = dict(query or {})
    body.setdefault("page_size", PAGE_SIZE)

    results = []
    while True:
        response = requests.post(url, headers=notion_headers(), json=body)
        _raise_for_status(response, f"query of {database_id}")
        data = response.json()
        results.extend(data.get('results', []))

        if not data.get('has_more') or not data.get('next_cursor'):
            break
        body["start_cursor"] = data['next_cursor']

    logger.info(f"Fetched {len(results)} records from database {database_id}")
    return results


def retrieve_record(page_id):
    url = f"{NOTION_BASE_URL}/pages/{page_id}"
    response = requests.get(url, headers=notion_headers())
    _raise_for_status(response, f"retrieve of {page_id}")
    return response.json()


def update_record(page_id, properties):
    """PATCH the given properties onto a page and return the updated page."""
    if not page_id:
        raise ValueError("A page ID is required to update.")
    url = f"{NOTION_BASE_URL}/pages/{page_id}"
    response = requests.patch(url, headers=notion_headers(), json={"properties": properties})
    _raise_for_status(response, f"update of {page_id}")
    logger.info(f"Updated Notion page {page_id}: {sorted(properties)}")
    return response.json()


def archive_record(page_id):
    url = f"{NOTION_BASE_URL}/pages/{page_id}"
    response = requests.patch(url, headers=notion_headers(), json={"archived": True})
    _raise_for_status(response, f"archive of {page_id}")
    logger.info(f"Archived Notion page {page_id}")
    return response.json()


def create_record(database_id, properties):
    url = f"{NOTION_BASE_URL}/pages"
    data = {
        "parent": {"database_id": database_id},
        "properties": properties,
    }
    response = requests.post(url, headers=notion_headers(), json=data)
    _raise_for_status(response, f"create in {database_id}")
    result = response.json()
    logger.info(f"Created Notion page {result.get('id')} in {database_id}")
    return result


def delete_record(page_id):
    """
    Delete a page through the block endpoint.

    Returns True when deleted, False when Notion reports it is already gone.
    """
    url = f"{NOTION_BASE_URL}/blocks/{page_id}"
    response = requests.delete(url, headers=notion_headers())
    # Notion answers 400 "archived" for a page already in the trash
    if response.status_code == 404 or (response.status_code == 400 and 'archived' in response.text.lower()):
        logger.warning(f"Page {page_id} already deleted")
        return False
    _raise_for_status(response, f"delete of {page_id}")
    logger.info(f"Deleted Notion page {page_id}")
    return True

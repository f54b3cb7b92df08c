"""
Deliverable submission deduplication.

Designers submit through a Notion form that creates a fresh "New submission"
page each time. handle_submission() folds that page into the existing record
for the same deliverable (files appended, comments appended with a date stamp)
and deletes the submission, or promotes it when it is the first of its kind.

Merge and delete are two separate Notion calls. Before deleting, the surviving
record is stamped with the submission ID in the marker property (when the
database has one), so a retried webhook sees the marker and only finishes the
delete instead of merging twice.
"""

import logging
from datetime import datetime, timezone

import requests

from . import config
from . import schema
from . import properties
from . import notion_api

logger = logging.getLogger(__name__)

NEW_SUBMISSION_TITLE = 'New submission'
SUBMITTED = 'Submitted'
TITLE_PROPERTY = 'Select Deliverable:'
FILE_PROPERTIES = ('File', 'Attach your document')
COPIED_FIELDS = ('Category', 'Gate', 'Submitted By', 'Trade')


def merge_comments(existing, new, stamp):
    """Append new comment text under a date stamp. Existing text is never replaced."""
    if not new:
        return existing or ''
    if not existing:
        return new
    return f"{existing}\n\n[{stamp}] {new}"


def _files(record, name):
    value = properties.extract(record, name)
    return value if isinstance(value, list) else []


def merge_files(existing, new):
    """Concatenate attachment lists, keeping order and duplicates."""
    return list(existing or []) + list(new or [])


def _marker_ids(record):
    if not config.DEDUPE_MARKER_PROPERTY:
        return []
    raw = properties.text(record, config.DEDUPE_MARKER_PROPERTY)
    return [part.strip() for part in raw.split(',') if part.strip()]


def _copied_value(prop):
    """Re-shape a retrieved select/multi-select/date property into an update payload."""
    kind = prop.get('type') if isinstance(prop, dict) else None
    value = properties.extract_value(prop)
    if kind == 'multi_select' and value:
        return properties.multi_select_value(value)
    if kind == 'select' and value:
        return properties.select_value(value)
    if kind == 'date' and value:
        return {"date": prop['date']}
    return None


def build_merge_update(existing, submission, stamp):
    """
    Properties to PATCH onto the existing record when merging a submission.

    Args:
        existing: The surviving Notion page.
        submission: The duplicate submission page.
        stamp: ISO date used in the comment separator.
    """
    update = {}

    for name in FILE_PROPERTIES:
        new_files = _files(submission, name)
        if new_files:
            existing_files = _files(existing, name)
            update[name] = properties.files_value(merge_files(existing_files, new_files))

    new_comments = schema.text(submission, 'deliverable', 'comments')
    if new_comments:
        existing_comments = schema.text(existing, 'deliverable', 'comments')
        update['Comments'] = properties.rich_text_value(merge_comments(existing_comments, new_comments, stamp))

    update['Status'] = properties.select_value(SUBMITTED)

    for name in COPIED_FIELDS + ('Target Due',):
        prop = properties.get_prop(submission, name)
        value = _copied_value(prop) if prop else None
        if value:
            update[name] = value

    # Notion rejects updates naming a property the database does not have
    if config.DEDUPE_MARKER_PROPERTY and properties.get_prop(existing, config.DEDUPE_MARKER_PROPERTY) is not None:
        merged_from = _marker_ids(existing) + [submission['id']]
        update[config.DEDUPE_MARKER_PROPERTY] = properties.rich_text_value(', '.join(merged_from))

    return update


def _find_existing(deliverable_name, exclude_id):
    matches = notion_api.query_all(config.DELIVERABLES_DB_ID, {
        "filter": {
            "property": TITLE_PROPERTY,
            "title": {"equals": deliverable_name},
        }
    })
    return next((p for p in matches if p.get('id') != exclude_id and not p.get('archived')), None)


def handle_submission(page_id, today=None):
    """
    Deduplicate a single form submission.

    Returns:
        dict with success and action (skipped, created, merged, already_merged),
        or success False and the error message when any Notion call fails.
        Nothing is rolled back on failure.
    """
    stamp = today or datetime.now(timezone.utc).date().isoformat()
    try:
        try:
            submission = notion_api.retrieve_record(page_id)
        except requests.HTTPError as e:
            if e.response is None or e.response.status_code != 404:
                raise
            logger.warning(f"Submission {page_id} not found, treating as already merged")
            return {"success": True, "action": "already_merged", "deletedPageId": page_id}

        if submission.get('archived') or submission.get('in_trash'):
            logger.info(f"Submission {page_id} already removed, nothing to do")
            return {"success": True, "action": "already_merged", "deletedPageId": page_id}

        tags = schema.names(submission, 'deliverable', 'tags')
        if not tags:
            logger.info(f"No deliverable selected on {page_id}, skipping dedupe")
            return {"success": True, "action": "skipped"}
        deliverable_name = tags[0]

        title = properties.text(submission, TITLE_PROPERTY)
        if title and title != NEW_SUBMISSION_TITLE:
            logger.info(f"Page {page_id} already has title '{title}', skipping dedupe")
            return {"success": True, "action": "skipped"}

        existing = _find_existing(deliverable_name, page_id)

        if existing is None:
            notion_api.update_record(page_id, {
                TITLE_PROPERTY: properties.title_value(deliverable_name),
                "Status": properties.select_value(SUBMITTED),
            })
            logger.info(f"New deliverable created: {deliverable_name}")
            return {"success": True, "action": "created", "deliverable": deliverable_name}

        if page_id in _marker_ids(existing):
            logger.warning(f"Submission {page_id} already merged into {existing['id']}, finishing delete")
            notion_api.delete_record(page_id)
            return {
                "success": True,
                "action": "already_merged",
                "deliverable": deliverable_name,
                "existingPageId": existing['id'],
                "deletedPageId": page_id,
            }

        notion_api.update_record(existing['id'], build_merge_update(existing, submission, stamp))
        notion_api.delete_record(page_id)

        logger.info(f"Merged duplicate {page_id} into existing {existing['id']}: {deliverable_name}")
        return {
            "success": True,
            "action": "merged",
            "deliverable": deliverable_name,
            "existingPageId": existing['id'],
            "deletedPageId": page_id,
        }

    except requests.RequestException as e:
        logger.error(f"Dedupe of {page_id} failed: {e}", exc_info=True)
        return {"success": False, "error": str(e)}


def process_new_submissions(today=None):
    """Run handle_submission for every page still titled "New submission"."""
    pending = notion_api.query_all(config.DELIVERABLES_DB_ID, {
        "filter": {
            "property": TITLE_PROPERTY,
            "title": {"equals": NEW_SUBMISSION_TITLE},
        }
    })
    logger.info(f"Found {len(pending)} new submission(s)")

    results = [dict(handle_submission(p['id'], today), pageId=p['id']) for p in pending]
    return {"processed": len(pending), "results": results}


# =============================================================================
# BATCH SWEEP
# =============================================================================

def _group_key(record):
    title = properties.text(record, TITLE_PROPERTY)
    tags = ','.join(sorted(schema.names(record, 'deliverable', 'tags')))
    if not title or not tags:
        return None
    return f"{tags}::{title}"


def deduplicate_all(today=None):
    """
    Sweep the whole deliverables database for duplicates.

    Records sharing both deliverable tags and title are merged into the oldest
    one (by created_time); the others are archived.
    """
    stamp = today or datetime.now(timezone.utc).date().isoformat()
    records = notion_api.query_all(config.DELIVERABLES_DB_ID)

    grouped = {}
    for record in records:
        key = _group_key(record)
        if key:
            grouped.setdefault(key, []).append(record)

    duplicates = {k: v for k, v in grouped.items() if len(v) > 1}
    logger.info(f"Duplicate deliverables found: {len(duplicates)}")
    if not duplicates:
        return {"message": "No duplicates found", "duplicatesProcessed": 0, "totalMerged": 0}

    total_merged = 0
    for key, pages in duplicates.items():
        pages.sort(key=lambda p: p.get('created_time') or '')
        original, extras = pages[0], pages[1:]
        logger.info(f"Merging {len(extras)} duplicate(s) into {original['id']} for {key}")

        files = _files(original, 'File')
        comments = schema.text(original, 'deliverable', 'comments')
        for dup in extras:
            dup_files = _files(dup, 'Attach your document') + _files(dup, 'File')
            files = merge_files(files, dup_files)
            comments = merge_comments(comments, schema.text(dup, 'deliverable', 'comments'), stamp)

        notion_api.update_record(original['id'], {
            'File': properties.files_value(files),
            'Comments': properties.rich_text_value(comments),
        })
        for dup in extras:
            notion_api.archive_record(dup['id'])
        total_merged += len(extras)

    return {"duplicatesProcessed": len(duplicates), "totalMerged": total_merged}

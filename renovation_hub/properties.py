"""
Notion property extraction.

A page's `properties` map holds tagged values ({"type": "select", "select": {...}}).
extract() unwraps the first present property among the given names into a plain
scalar or list. It never raises: absent or malformed properties come back as
an empty string, and callers that need numbers, lists or dates go through the
typed helpers below.
"""

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

MISSING = ''


def _plain_text(segments):
    # Long values are split across segments by rich_text_value(), so join them back
    if not segments:
        return ''
    return ''.join(s.get('plain_text') or (s.get('text') or {}).get('content') or '' for s in segments)


def _formula(value):
    kind = value.get('type')
    if kind == 'date':
        return (value.get('date') or {}).get('start')
    if kind in ('string', 'number', 'boolean'):
        return value.get(kind)
    return MISSING


def _rollup(value):
    kind = value.get('type')
    if kind == 'number':
        return value.get('number')
    if kind == 'date':
        return (value.get('date') or {}).get('start')
    if kind == 'array':
        parts = []
        for item in value.get('array') or []:
            inner = extract_value(item)
            if isinstance(inner, list):
                parts.extend(str(v) for v in inner if v not in (None, ''))
            elif inner not in (None, ''):
                parts.append(str(inner))
        return ', '.join(parts)
    return MISSING


_EXTRACTORS = {
    'title': _plain_text,
    'rich_text': _plain_text,
    'select': lambda v: (v or {}).get('name') or '',
    'status': lambda v: (v or {}).get('name') or '',
    'number': lambda v: v,
    'date': lambda v: (v or {}).get('start'),
    'checkbox': bool,
    'formula': _formula,
    'relation': lambda v: v[0].get('id') if v else None,
    'multi_select': lambda v: [o.get('name', '') for o in v or []],
    'people': lambda v: [p.get('name') or '' for p in v or []],
    'rollup': _rollup,
    'files': lambda v: list(v or []),
    'url': lambda v: v or '',
    'email': lambda v: v or '',
    'phone_number': lambda v: v or '',
    'created_time': lambda v: v or '',
    'last_edited_time': lambda v: v or '',
    'unique_id': lambda v: f"{(v or {}).get('prefix') or ''}{(v or {}).get('number') or ''}",
}


def extract_value(prop):
    """Unwrap a single tagged property value."""
    if not isinstance(prop, dict):
        return MISSING

    kind = prop.get('type')
    if kind not in _EXTRACTORS:
        # Hand-built payloads sometimes omit the tag
        kind = next((k for k in _EXTRACTORS if k in prop), None)
        if kind is None:
            return MISSING

    try:
        return _EXTRACTORS[kind](prop.get(kind))
    except (AttributeError, IndexError, KeyError, TypeError):
        logger.debug(f"Malformed {kind} property: {prop!r}")
        return MISSING


def get_prop(page, *names):
    """Return the first present raw property among names, or None."""
    props = (page or {}).get('properties') or {}
    for name in names:
        if name in props and props[name] is not None:
            return props[name]
    return None


def extract(page, *names):
    """
    Look up the first present property among names and unwrap it.

    Returns '' when none of the names is present.
    """
    prop = get_prop(page, *names)
    if prop is None:
        return MISSING
    return extract_value(prop)


def text(page, *names):
    value = extract(page, *names)
    if value is None:
        return ''
    if isinstance(value, list):
        return ', '.join(str(v) for v in value)
    if isinstance(value, bool):
        return 'Yes' if value else ''
    return str(value).strip()


def number(page, *names):
    value = extract(page, *names)
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value) if value not in (None, '') else 0.0
    except (TypeError, ValueError):
        return 0.0


def optional_number(page, *names):
    """Like number() but keeps the difference between 0 and not set."""
    value = extract(page, *names)
    if value in (None, '') or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def names(page, *props):
    value = extract(page, *props)
    if isinstance(value, list):
        return [v for v in value if v]
    return [value] if value else []


def checkbox(page, *props):
    value = extract(page, *props)
    if isinstance(value, str):
        return value.strip().lower() in ('true', 'yes', '1', '__yes__')
    return bool(value)


def parse_date(value):
    """
    Parse a Notion date string into an aware UTC datetime.

    Date-only values are midnight UTC. Returns None for empty or unparseable input.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.debug(f"Unparseable date: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# =============================================================================
# WRITE PAYLOADS
# =============================================================================

def title_value(content):
    return {"title": [{"text": {"content": content or ''}}]}


def rich_text_value(content):
    # Notion caps a single text segment at 2000 characters
    content = content or ''
    chunks = [content[i:i + 2000] for i in range(0, len(content), 2000)] or ['']
    return {"rich_text": [{"text": {"content": chunk}} for chunk in chunks]}


def select_value(name):
    return {"select": {"name": name} if name else None}


def status_value(name):
    return {"status": {"name": name}}


def multi_select_value(values):
    return {"multi_select": [{"name": v} for v in values if v]}


def date_value(start):
    return {"date": {"start": start} if start else None}


def files_value(files):
    return {"files": list(files)}

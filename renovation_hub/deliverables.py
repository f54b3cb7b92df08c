"""
Required-deliverables reconciliation and gate scoring.

Submitted deliverables are matched against the per-gate checklist after
normalising case, whitespace, accents and dash variants. Checklist items with
no submission get a synthesized "Missing" placeholder, and each gate is scored
on its required items only.
"""

import re
import logging
import unicodedata

from . import schema
from . import properties

logger = logging.getLogger(__name__)

APPROVED = 'Approved'
SUBMITTED = 'Submitted'
REJECTED = 'Rejected'
MISSING = 'Missing'

CONSTRUCTION_CERTIFICATE = 'Construction Certificate'

_DASHES = re.compile(r"[\u2010-\u2015\u2212]")
_NEGATED_APPROVAL = re.compile(r'\b(not|never|no|non)\b.*\bapproved|\b(un|dis|non)[\s-]*approved')
_REJECTION = re.compile(r'reject|declin|refused|\bfail')
_SUBMITTED_WORDS = ('pending', 'comment', 'resubmission', 'resubmit', 'submit', 'review')


def normalize_key(value):
    """Lowercase, strip accents, unify dashes and collapse whitespace."""
    s = unicodedata.normalize('NFD', str(value or ''))
    s = ''.join(ch for ch in s if not unicodedata.combining(ch))
    s = _DASHES.sub('-', s)
    return re.sub(r'\s+', ' ', s).strip().lower()


def normalize_status(raw):
    """
    Classify a free-text status or review status.

    Returns one of Approved, Submitted, Rejected, Missing.
    """
    s = normalize_key(raw)
    if not s:
        return MISSING
    if _NEGATED_APPROVAL.search(s) or _REJECTION.search(s):
        return REJECTED
    if 'approved' in s:
        return APPROVED
    if any(word in s for word in _SUBMITTED_WORDS):
        return SUBMITTED
    return MISSING


def gate_of(record):
    # Gate is a multi-select on newer pages and a formula/select on older ones
    gates = properties.names(record, 'Gate')
    if gates:
        return gates[0]
    return schema.text(record, 'deliverable', 'gate_auto')


def _is_priority(value):
    if isinstance(value, bool):
        return value
    return normalize_key(value) in ('high', 'critical', 'p0', 'p1', 'urgent', 'yes', 'true')


def to_deliverable(record, required_by_gate):
    """Map a raw Notion page to a deliverable dict."""
    category = schema.text(record, 'deliverable', 'category')
    deliverable_type = schema.text(record, 'deliverable', 'title')
    gate = gate_of(record)

    if category == CONSTRUCTION_CERTIFICATE:
        raw_status = schema.text(record, 'deliverable', 'review_status')
    else:
        raw_status = schema.text(record, 'deliverable', 'status') \
            or schema.text(record, 'deliverable', 'review_status')

    is_critical = is_required(gate, deliverable_type, required_by_gate)
    priority = schema.field(record, 'deliverable', 'priority')

    return {
        'id': record.get('id'),
        'title': deliverable_type,
        'deliverableType': deliverable_type,
        'gate': gate,
        'status': normalize_status(raw_status),
        'rawStatus': raw_status,
        'category': category,
        'isCritical': is_critical,
        'priority': priority if isinstance(priority, str) else '',
        'isPriority': is_critical or _is_priority(priority),
        'assignees': schema.names(record, 'deliverable', 'assignees'),
        'url': record.get('url'),
        'dueDate': schema.field(record, 'deliverable', 'due_date') or None,
    }


def is_required(gate, deliverable_type, required_by_gate):
    gate_key = normalize_key(gate)
    type_key = normalize_key(deliverable_type)
    for gate_name, required in required_by_gate.items():
        if normalize_key(gate_name) == gate_key:
            return any(normalize_key(r) == type_key for r in required)
    return False


def placeholder(gate, required_type):
    return {
        'id': None,
        'title': required_type,
        'deliverableType': required_type,
        'gate': gate,
        'status': MISSING,
        'rawStatus': '',
        'category': 'Design Document',
        'isCritical': True,
        'priority': '',
        'isPriority': True,
        'assignees': [],
        'url': None,
        'dueDate': None,
    }


def _key(gate, deliverable_type):
    return f"{normalize_key(gate)}|{normalize_key(deliverable_type)}"


def merge_with_required(deliverables, required_by_gate):
    """Append a Missing placeholder for every required (gate, type) not already present."""
    existing = {_key(d['gate'], d['deliverableType']) for d in deliverables}
    merged = list(deliverables)

    for gate, required in required_by_gate.items():
        for required_type in required:
            key = _key(gate, required_type)
            if key not in existing:
                merged.append(placeholder(gate, required_type))
                existing.add(key)

    return merged


def score_gates(deliverables, required_by_gate):
    """
    Per-gate approval summary over required items.

    `approved` counts required types with at least one Approved deliverable in
    the gate, so a checklist item submitted twice is still counted once.
    Gates with no required items are left out.
    """
    gates = []
    for gate, required in required_by_gate.items():
        required_keys = {normalize_key(r) for r in required}
        total = len(required_keys)
        if total == 0:
            continue

        gate_key = normalize_key(gate)
        approved_keys = {
            normalize_key(d['deliverableType'])
            for d in deliverables
            if normalize_key(d['gate']) == gate_key and d['status'] == APPROVED
        } & required_keys
        approved = len(approved_keys)

        gates.append({
            'gate': gate,
            'approved': approved,
            'total': total,
            'missing': sum(
                1 for d in deliverables
                if normalize_key(d['gate']) == gate_key
                and d['status'] == MISSING
                and normalize_key(d['deliverableType']) in required_keys
            ),
            'gateApprovalRate': approved / total if total else 0,
        })
    return gates


def reconcile(raw_deliverables, required_by_gate):
    """
    Reconcile submitted deliverable records against the gate checklist.

    Args:
        raw_deliverables: Notion pages from the deliverables database.
        required_by_gate: Ordered mapping of gate name to required deliverable types.

    Returns:
        (all_deliverables, gate_summaries)
    """
    processed = [to_deliverable(p, required_by_gate) for p in raw_deliverables]
    all_deliverables = merge_with_required(processed, required_by_gate)
    gates = score_gates(all_deliverables, required_by_gate)

    logger.info(
        f"Reconciled {len(processed)} submitted deliverables, "
        f"{len(all_deliverables) - len(processed)} missing placeholders, {len(gates)} gates"
    )
    return all_deliverables, gates


def find_deliverable(deliverables, name):
    """Find a deliverable by type, tolerating a leading "G4 - " style gate prefix."""
    target = normalize_key(name)
    for d in deliverables:
        key = normalize_key(d['deliverableType'])
        if key == target or key.endswith(f"- {target}"):
            return d
    return None

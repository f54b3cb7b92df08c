"""
Dashboard assembly for GET /proxy.

fetch_sources() does the network fan-out; assemble_dashboard() is pure so the
whole response can be built from fixture pages.
"""

import math
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from . import config
from . import schema
from . import finance
from . import deliverables
from .notion_api import query_all
from .properties import parse_date

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10


def source_queries():
    """Source name -> (database ID, query body). Read at call time so config can change."""
    return {
        'budget': (config.NOTION_BUDGET_DB_ID, None),
        'actuals': (config.NOTION_ACTUALS_DB_ID, None),
        'milestones': (config.MILESTONES_DB_ID, None),
        'deliverables': (config.DELIVERABLES_DB_ID, None),
        'vendors': (config.VENDOR_REGISTRY_DB_ID, None),
        'payments': (config.PAYMENTS_DB_ID, None),
        'workPackages': (config.NOTION_WORK_PACKAGES_DB_ID, {
            "sorts": [{"property": "Start Date", "direction": "ascending"}],
        }),
        'activity': (config.ACTIVITY_LOG_DB_ID, {
            "sorts": [{"property": "Event_Timestamp", "direction": "descending"}],
        }),
    }


def fetch_sources(queries=None):
    """
    Query every dashboard source concurrently.

    Waits for all queries to settle, then re-raises the first failure if any.

    Returns:
        dict of source name -> list of pages
    """
    queries = queries or source_queries()
    with ThreadPoolExecutor(max_workers=len(queries)) as executor:
        futures = {
            name: executor.submit(query_all, db_id, body)
            for name, (db_id, body) in queries.items()
        }

    results, errors = {}, []
    for name, future in futures.items():
        exc = future.exception()
        if exc is not None:
            logger.error(f"Dashboard source '{name}' failed: {exc}")
            errors.append(exc)
        else:
            results[name] = future.result()

    if errors:
        raise errors[0]
    return results


def _work_package(record):
    return {
        'id': record.get('id'),
        'name': schema.text(record, 'work_package', 'name'),
        'trade': schema.text(record, 'work_package', 'trade'),
        'status': schema.text(record, 'work_package', 'status'),
        'startDate': schema.field(record, 'work_package', 'start') or None,
        'endDate': schema.field(record, 'work_package', 'end') or None,
        'url': record.get('url'),
    }


def _activity(record):
    return {
        'eventType': schema.text(record, 'activity', 'event_type'),
        'deliverable': schema.text(record, 'activity', 'deliverable'),
        'details': schema.text(record, 'activity', 'details'),
        'timestamp': schema.field(record, 'activity', 'timestamp') or None,
        'source': schema.text(record, 'activity', 'source'),
        'url': record.get('url'),
    }


def _sort_key_by_date(value):
    return parse_date(value) or datetime.max.replace(tzinfo=timezone.utc)


def build_alerts(all_deliverables, gates, overdue, cfg, now):
    start = parse_date(cfg.construction_start_date)
    days_to_start = math.ceil((start - now).total_seconds() / 86400) if start else None

    g3 = next((g for g in gates if deliverables.normalize_key(g['gate']).startswith('g3')), None)
    permit = deliverables.find_deliverable(all_deliverables, 'Renovation Permit')
    contractor = deliverables.find_deliverable(all_deliverables, 'Contractor Awarded')

    return {
        'daysToConstructionStart': days_to_start,
        'g3NotApproved': (g3['gateApprovalRate'] if g3 else 0) < 1,
        'paymentsOverdue': overdue,
        'mbsaPermitApproved': bool(permit and permit['status'] == deliverables.APPROVED),
        'contractorAwarded': bool(contractor and contractor['status'] == deliverables.APPROVED),
    }


def assemble_dashboard(sources, cfg, now=None):
    """
    Build the full dashboard payload from fetched pages.

    Args:
        sources: dict of source name -> list of Notion pages (missing sources are empty).
        cfg: DashboardConfig
        now: aware datetime, defaults to the current UTC time.
    """
    now = now or datetime.now(timezone.utc)
    pages = {name: sources.get(name) or [] for name in source_queries()}

    all_deliverables, gates = deliverables.reconcile(pages['deliverables'], cfg.required_by_gate)
    financials = finance.aggregate(
        pages['budget'], pages['actuals'], pages['payments'], pages['vendors'], cfg, now
    )
    schedule = financials['paymentsSchedule']

    budget = financials['budgetMYR']
    paid = financials['paidMYR']
    approved_count = sum(1 for d in all_deliverables if d['status'] == deliverables.APPROVED)
    total_count = len(all_deliverables)
    at_risk = sum(
        1 for m in pages['milestones']
        if schema.text(m, 'milestone', 'risk_status').lower() == 'at risk'
    )

    kpis = {
        'budgetMYR': budget,
        'paidMYR': paid,
        'remainingMYR': budget - paid,
        'deliverablesApproved': approved_count,
        'deliverablesTotal': total_count,
        'totalOutstandingMYR': sum(p['amount'] for p in schedule['overdue'] + schedule['upcoming']),
        'totalOverdueMYR': sum(p['amount'] for p in schedule['overdue']),
        'paidVsBudget': paid / budget if budget > 0 else 0,
        'deliverablesProgress': approved_count / total_count if total_count else 0,
        'milestonesAtRisk': at_risk,
    }

    work_packages = sorted(
        (_work_package(p) for p in pages['workPackages']),
        key=lambda wp: _sort_key_by_date(wp['startDate']),
    )
    activity = sorted(
        (_activity(p) for p in pages['activity']),
        key=lambda a: parse_date(a['timestamp']) or datetime.min.replace(tzinfo=timezone.utc),
        reverse=True,
    )[:RECENT_ACTIVITY_LIMIT]

    return {
        'kpis': kpis,
        'gates': gates,
        'topVendors': financials['topVendors'],
        'budgetByTrade': financials['budgetByTrade'],
        'deliverables': all_deliverables,
        'paymentsSchedule': schedule,
        'workPackages': work_packages,
        'recentActivity': activity,
        'alerts': build_alerts(all_deliverables, gates, schedule['overdue'], cfg, now),
        'timestamp': now.isoformat(),
    }


def build_dashboard(cfg=None, now=None):
    cfg = cfg or config.load_dashboard_config()
    return assemble_dashboard(fetch_sources(), cfg, now)

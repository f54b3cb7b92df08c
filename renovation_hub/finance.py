"""
Budget, spend and payment-schedule rollups.

All amounts are MYR. Status comparisons are case-insensitive throughout.
"""

import logging
from datetime import datetime, timezone

from . import schema
from .properties import parse_date

logger = logging.getLogger(__name__)

OUTSTANDING = 'Outstanding'
OVERDUE = 'Overdue'
PAID = 'Paid'

UNKNOWN_VENDOR = 'Unknown'
TOP_VENDOR_LIMIT = 5
SCHEDULE_LIMIT = 10


def normalize_payment_status(raw):
    s = str(raw or '').strip().lower()
    if s == 'paid':
        return PAID
    if s == 'overdue':
        return OVERDUE
    if s == 'outstanding':
        return OUTSTANDING
    return ''


# =============================================================================
# BUDGET
# =============================================================================

def _in_scope_lines(budget_lines):
    for line in budget_lines:
        in_scope = schema.field(line, 'budget', 'in_scope')
        if in_scope is True or (isinstance(in_scope, str) and in_scope.strip().lower() in ('true', 'yes')):
            yield line


def _line_cost(line):
    return schema.number(line, 'budget', 'supply') + schema.number(line, 'budget', 'install')


def budget_subtotal(budget_lines):
    return sum(_line_cost(line) for line in _in_scope_lines(budget_lines))


def apply_budget_constants(subtotal, config):
    """(subtotal + shipping) x (1 - discount) x (1 + contingency)"""
    return (subtotal + config.shipping_addend) * (1 - config.discount_rate) * (1 + config.contingency_rate)


def budget_total(budget_lines, config):
    return apply_budget_constants(budget_subtotal(budget_lines), config)


def budget_by_trade(budget_lines):
    totals = {}
    for line in _in_scope_lines(budget_lines):
        trade = schema.text(line, 'budget', 'trade') or 'Other'
        totals[trade] = totals.get(trade, 0) + _line_cost(line)
    return totals


# =============================================================================
# ACTUALS & VENDORS
# =============================================================================

def vendor_lookup(vendor_records):
    """Map vendor page ID to display name."""
    return {
        v.get('id'): schema.text(v, 'vendor', 'name') or UNKNOWN_VENDOR
        for v in vendor_records
    }


def _paid_actuals(actuals):
    return [a for a in actuals if normalize_payment_status(schema.text(a, 'actual', 'status')) == PAID]


def paid_to_date(actuals):
    return sum(schema.number(a, 'actual', 'paid') for a in _paid_actuals(actuals))


def paid_by_vendor(actuals, vendors):
    totals = {}
    for actual in _paid_actuals(actuals):
        vendor_id = schema.field(actual, 'actual', 'vendor')
        name = vendors.get(vendor_id, UNKNOWN_VENDOR) if vendor_id else UNKNOWN_VENDOR
        totals[name] = totals.get(name, 0) + schema.number(actual, 'actual', 'paid')
    return totals


def top_vendors(actuals, vendors, limit=TOP_VENDOR_LIMIT):
    ranked = sorted(paid_by_vendor(actuals, vendors).items(), key=lambda kv: kv[1], reverse=True)
    return [{'name': name, 'paid': paid, 'trade': '—'} for name, paid in ranked[:limit]]


# =============================================================================
# PAYMENT SCHEDULE
# =============================================================================

def to_payment(record):
    return {
        'id': record.get('id'),
        'paymentFor': schema.text(record, 'payment', 'payment_for') or 'Untitled',
        'vendor': schema.text(record, 'payment', 'vendor'),
        'amount': schema.number(record, 'payment', 'amount'),
        'status': normalize_payment_status(schema.text(record, 'payment', 'status')),
        'dueDate': schema.field(record, 'payment', 'due_date') or None,
        'paidDate': schema.field(record, 'payment', 'paid_date') or None,
        'url': record.get('url'),
    }


def _due(payment):
    return parse_date(payment['dueDate'])


def classify_payments(payment_records, now=None):
    """
    Bucket payments into overdue, upcoming and recently paid.

    Returns:
        dict with 'overdue' (ascending by due date), 'upcoming' (ascending, at most
        10, undated last) and 'recentPaid' (descending by paid date, at most 10).
    """
    now = now or datetime.now(timezone.utc)
    payments = [to_payment(p) for p in payment_records]

    overdue = [
        p for p in payments
        if p['status'] in (OUTSTANDING, OVERDUE) and _due(p) is not None and _due(p) < now
    ]
    overdue.sort(key=lambda p: _due(p))

    upcoming = [
        p for p in payments
        if p['status'] == OUTSTANDING and (_due(p) is None or _due(p) >= now)
    ]
    upcoming.sort(key=lambda p: (_due(p) is None, _due(p) or now))

    recent_paid = [p for p in payments if p['status'] == PAID]
    recent_paid.sort(key=lambda p: parse_date(p['paidDate']) or datetime.min.replace(tzinfo=timezone.utc),
                     reverse=True)

    return {
        'overdue': overdue,
        'upcoming': upcoming[:SCHEDULE_LIMIT],
        'recentPaid': recent_paid[:SCHEDULE_LIMIT],
    }


def _add_months(year, month, offset):
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def forecast(payment_records, now=None, months=4):
    """
    Cash-flow forecast for the current month and the next months-1.

    Outstanding/overdue payments are summed into the month they fall due.
    Undated payments and anything due before the current month are folded
    into month 0.

    Returns:
        list of {'month': 'Oct', 'year': 2026, 'totalAmount': float}, chronological.
    """
    now = now or datetime.now(timezone.utc)
    payments = [to_payment(p) for p in payment_records]
    open_payments = [p for p in payments if p['status'] in (OUTSTANDING, OVERDUE)]

    buckets = []
    for i in range(months):
        year, month = _add_months(now.year, now.month, i)
        buckets.append({
            'start': datetime(year, month, 1, tzinfo=timezone.utc),
            'month': datetime(year, month, 1).strftime('%b'),
            'year': year,
            'totalAmount': 0.0,
        })
    end_year, end_month = _add_months(now.year, now.month, months)
    window_end = datetime(end_year, end_month, 1, tzinfo=timezone.utc)

    for p in open_payments:
        due = _due(p)
        if due is None or due < buckets[0]['start']:
            buckets[0]['totalAmount'] += p['amount']
            continue
        if due >= window_end:
            continue
        for bucket in reversed(buckets):
            if due >= bucket['start']:
                bucket['totalAmount'] += p['amount']
                break

    return [{'month': b['month'], 'year': b['year'], 'totalAmount': b['totalAmount']} for b in buckets]


# =============================================================================
# SUMMARY
# =============================================================================

def aggregate(budget_lines, actuals, payment_records, vendor_records, config, now=None):
    """
    Financial summary for the dashboard.

    Returns:
        dict with budgetMYR, paidMYR, topVendors, budgetByTrade and the
        paymentsSchedule (upcoming, overdue, recentPaid, forecast).
    """
    now = now or datetime.now(timezone.utc)
    vendors = vendor_lookup(vendor_records)
    schedule = classify_payments(payment_records, now)
    schedule['forecast'] = forecast(payment_records, now, config.forecast_months)

    summary = {
        'budgetMYR': budget_total(budget_lines, config),
        'paidMYR': paid_to_date(actuals),
        'topVendors': top_vendors(actuals, vendors),
        'budgetByTrade': budget_by_trade(budget_lines),
        'paymentsSchedule': schedule,
    }
    logger.info(
        f"Financials: budget {summary['budgetMYR']:.2f}, paid {summary['paidMYR']:.2f}, "
        f"{len(schedule['overdue'])} overdue payments"
    )
    return summary

"""
Vendor bid comparison views.

compare_bids() reads the Sourcing Master List and compares bids per
(trade, room). compare_quotations() does the same per trade for the
Quotations Hub.
"""

import logging

from . import schema
from . import properties
from .finance import UNKNOWN_VENDOR

logger = logging.getLogger(__name__)


def effective_total(total_price, quantity, unit_price):
    """
    Price used to rank a bid.

    Total price if set, else quantity x unit price, else the unit price alone
    (rate-only bids). None when the row has no price at all.
    """
    if total_price:
        return total_price
    if quantity and unit_price:
        return quantity * unit_price
    if unit_price:
        return unit_price
    return None


def to_bid(record):
    quantity = properties.optional_number(record, *schema.aliases('bid', 'quantity'))
    unit_price = properties.optional_number(record, *schema.aliases('bid', 'unit_price'))
    total_price = properties.optional_number(record, *schema.aliases('bid', 'total_price'))

    return {
        'item_name': schema.text(record, 'bid', 'item'),
        'trade': schema.text(record, 'bid', 'trade') or 'Uncategorised',
        'room': schema.text(record, 'bid', 'room') or 'General',
        'vendor': schema.text(record, 'bid', 'vendor') or UNKNOWN_VENDOR,
        'quantity': quantity,
        'unit_price_myr': unit_price,
        'total_price_myr': effective_total(total_price, quantity, unit_price),
        'coverage': schema.text(record, 'bid', 'coverage'),
        'notes': schema.text(record, 'bid', 'notes'),
        'url': record.get('url'),
    }


def _comparison(entries, price_key):
    # sorted() is stable, so ties keep insertion order
    ranked = sorted(entries, key=lambda e: e[price_key])
    lowest, highest = ranked[0], ranked[-1]
    return {
        'vendor_count': len({e['vendor'] for e in ranked}),
        'price_range': highest[price_key] - lowest[price_key],
        'lowest_bid': lowest,
        'highest_bid': highest,
        'all_bids': ranked,
    }


def compare_bids(records):
    """
    Group sourcing bids by (trade, room) and rank them by effective total.

    Returns:
        dict with trade_room_comparisons, total_groups and total_bids.
    """
    groups = {}
    skipped = 0
    for record in records:
        bid = to_bid(record)
        if bid['total_price_myr'] is None:
            skipped += 1
            continue
        groups.setdefault((bid['trade'], bid['room']), []).append(bid)

    comparisons = []
    for (trade, room), bids in groups.items():
        comparison = {'trade': trade, 'room': room}
        comparison.update(_comparison(bids, 'total_price_myr'))
        comparisons.append(comparison)
    comparisons.sort(key=lambda c: (c['trade'].lower(), c['room'].lower()))

    if skipped:
        logger.info(f"Skipped {skipped} sourcing rows without price data")

    return {
        'trade_room_comparisons': comparisons,
        'total_groups': len(comparisons),
        'total_bids': sum(len(bids) for bids in groups.values()),
    }


def to_quotation(record, vendors):
    prop = properties.get_prop(record, *schema.aliases('quotation', 'vendor')) or {}
    if prop.get('type') == 'relation':
        vendor_name = vendors.get(properties.extract_value(prop), '')
    else:
        vendor_name = properties.text(record, *schema.aliases('quotation', 'vendor'))

    return {
        'id': record.get('id'),
        'title': schema.text(record, 'quotation', 'title'),
        'vendor': vendor_name or UNKNOWN_VENDOR,
        'trade': schema.text(record, 'quotation', 'trade') or 'Uncategorised',
        'amount_myr': properties.optional_number(record, *schema.aliases('quotation', 'amount')),
        'status': schema.text(record, 'quotation', 'status'),
        'quote_date': schema.field(record, 'quotation', 'quote_date') or None,
        'valid_until': schema.field(record, 'quotation', 'valid_until') or None,
        'url': record.get('url'),
    }


def compare_quotations(records, vendors):
    """
    Group quotations by trade and rank them by amount.

    Args:
        records: Quotations Hub pages.
        vendors: vendor ID -> name lookup from the vendor registry.
    """
    groups = {}
    unpriced = []
    for record in records:
        quote = to_quotation(record, vendors)
        if quote['amount_myr'] is None:
            unpriced.append(quote)
            continue
        groups.setdefault(quote['trade'], []).append(quote)

    by_trade = []
    for trade, quotes in groups.items():
        comparison = {'trade': trade}
        comparison.update(_comparison(quotes, 'amount_myr'))
        by_trade.append(comparison)
    by_trade.sort(key=lambda c: c['trade'].lower())

    return {
        'quotations_by_trade': by_trade,
        'unpriced': unpriced,
        'total_trades': len(by_trade),
        'total_quotations': sum(len(q) for q in groups.values()) + len(unpriced),
    }

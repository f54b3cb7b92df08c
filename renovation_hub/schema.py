"""
Accepted Notion property names per logical field.

The databases have been renamed and restructured several times; each logical
field lists every historical property name, current name first.
"""

from . import properties

FIELD_ALIASES = {
    'budget': {
        'in_scope': ['inScope', 'In Scope'],
        'supply': ['supply_myr', 'Supply (MYR)'],
        'install': ['install_myr', 'Install (MYR)'],
        'trade': ['Trade', 'Category'],
    },
    'actual': {
        'status': ['Status', 'Payment Status'],
        'vendor': ['Vendor_Registry', 'Vendor'],
        'paid': ['Paid (MYR)', 'Amount (MYR)', 'Amount'],
    },
    'vendor': {
        'name': ['Company_Name', 'Name', 'Vendor Name'],
        'trade': ['Trade', 'Category'],
    },
    'payment': {
        'status': ['Status', 'Payment Status'],
        'amount': ['Amount (RM)', 'Amount (MYR)', 'Amount'],
        'due_date': ['DueDate', 'Due Date'],
        'paid_date': ['PaidDate', 'Paid Date'],
        'payment_for': ['Payment For', 'Name', 'Title'],
        'vendor': ['Vendor', 'Vendor_Registry'],
    },
    'milestone': {
        'risk_status': ['Risk_Status', 'Risk Status'],
    },
    'deliverable': {
        'title': ['Select Deliverable:', 'Deliverable Type', 'Name', 'Title'],
        'gate': ['Gate', 'Gate (Auto)', 'Gate Name'],
        'gate_auto': ['Gate (Auto)', 'Gate Name'],
        'status': ['Status', 'Submission Status'],
        'review_status': ['Review Status', 'Review_Status'],
        'category': ['Category', 'Deliverable Category'],
        'assignees': ['Owner', 'Assignee', 'Submitted By'],
        'submitted_by': ['Submitted By', 'Owner'],
        'due_date': ['Target Due', 'Due Date', 'DueDate'],
        'priority': ['Priority', 'Critical'],
        'tags': ['Deliverable'],
        'comments': ['Comments'],
        'files': ['File'],
        'attachments': ['Attach your document'],
        'trade': ['Trade'],
    },
    'work_package': {
        'name': ['Name', 'Work Package', 'Title'],
        'trade': ['Trade', 'Category'],
        'status': ['Status'],
        'start': ['Start Date', 'Start'],
        'end': ['End Date', 'End', 'Finish Date'],
    },
    'activity': {
        'event_type': ['Event_Type', 'Event Type'],
        'deliverable': ['Activity_ID', 'Deliverable'],
        'details': ['Event_Description', 'Description'],
        'timestamp': ['Event_Timestamp', 'Timestamp'],
        'source': ['Company_Name', 'Source'],
    },
    'bid': {
        'item': ['Item Name', 'Name'],
        'trade': ['Category', 'Trade'],
        'room': ['Room'],
        'vendor': ['Vendor'],
        'quantity': ['Quantity', 'Qty'],
        'unit_price': ['Unit Price (MYR)', 'Unit Price'],
        'total_price': ['Total Price (MYR)', 'Total Price'],
        'coverage': ['Coverage'],
        'notes': ['Notes'],
    },
    'quotation': {
        'title': ['Quotation', 'Name', 'Title'],
        'vendor': ['Vendor_Registry', 'Vendor'],
        'trade': ['Trade', 'Category'],
        'amount': ['Amount (MYR)', 'Total (MYR)', 'Amount'],
        'status': ['Status'],
        'quote_date': ['Quote Date', 'Date'],
        'valid_until': ['Valid Until'],
    },
}


def aliases(kind, name):
    return FIELD_ALIASES[kind][name]


def field(record, kind, name):
    """Raw extracted value of a logical field."""
    return properties.extract(record, *aliases(kind, name))


def text(record, kind, name):
    return properties.text(record, *aliases(kind, name))


def number(record, kind, name):
    return properties.number(record, *aliases(kind, name))


def names(record, kind, name):
    return properties.names(record, *aliases(kind, name))

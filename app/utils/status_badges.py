"""
Display lookup tables for status values.

Each table maps a stored status to a label and a badge colour. Unknown
values fall back to the table's default entry.
"""
from typing import NamedTuple


class Badge(NamedTuple):
    label: str
    color: str
    icon: str = ''


ORDER_STATUS = {
    'pending': Badge('Pending', 'yellow', 'clock'),
    'processing': Badge('Processing', 'blue', 'package'),
    'shipped': Badge('Shipped', 'purple', 'truck'),
    'delivered': Badge('Delivered', 'green', 'check-circle'),
    'cancelled': Badge('Cancelled', 'red', 'alert-circle'),
    'refunded': Badge('Refunded', 'gray', 'pound-sterling'),
}

PAYMENT_STATUS = {
    'pending': Badge('Pending', 'yellow'),
    'paid': Badge('Paid', 'green'),
    'failed': Badge('Failed', 'red'),
    'refunded': Badge('Refunded', 'gray'),
    'partially_refunded': Badge('Partial Refund', 'orange'),
}

RETURN_STATUS = {
    'requested': Badge('Requested', 'blue'),
    'approved': Badge('Approved', 'yellow'),
    'received': Badge('Received', 'purple'),
    'processed': Badge('Processed', 'green'),
    'rejected': Badge('Rejected', 'red'),
}

CAMPAIGN_STATUS = {
    'draft': Badge('Draft', 'gray'),
    'scheduled': Badge('Scheduled', 'blue'),
    'sending': Badge('Sending', 'yellow'),
    'sent': Badge('Sent', 'green'),
    'cancelled': Badge('Cancelled', 'red'),
}

_TABLES = {
    'order': (ORDER_STATUS, 'pending'),
    'payment': (PAYMENT_STATUS, 'pending'),
    'return': (RETURN_STATUS, 'requested'),
    'campaign': (CAMPAIGN_STATUS, 'draft'),
}


def badge_for(kind: str, status) -> Badge:
    """
    Look up the badge for ``status`` in the ``kind`` table.

    Raises:
        KeyError: for an unknown table kind
    """
    table, default = _TABLES[kind]
    return table.get(status, table[default])

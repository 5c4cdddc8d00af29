# payments/utils.py

"""
Payment Utility Functions

Contains:
- Order id generation for gateway correlation
- Uploaded proof validation
- Serialization helpers shared by views and exports
"""

import os
import uuid
import logging
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from payments.exceptions import PaymentValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# REFERENCE NUMBER GENERATION
# =============================================================================

ORDER_PREFIXES = {
    'online': 'ORDER',
    'manual': 'MANUAL',
}


def generate_order_id(method='online'):
    """
    Generate a globally unique order id.

    Format: <PREFIX>_<yyyymmddHHMMSS>_<12 hex chars>, e.g.
    ORDER_20261019143005_9f1c2a7b3d4e. The random suffix keeps ids unique
    across concurrent requests in the same second.
    """
    prefix = ORDER_PREFIXES.get(method, 'ORDER')
    stamp = timezone.now().strftime('%Y%m%d%H%M%S')
    return f"{prefix}_{stamp}_{uuid.uuid4().hex[:12]}"


def generate_manual_payment_id(proof):
    """Reference recorded as payment_id when an administrator approves a proof"""
    return f"MANUAL-{str(proof.id).split('-')[0].upper()}"


# =============================================================================
# PROOF VALIDATION
# =============================================================================

def validate_proof_file(uploaded_file):
    """
    Check declared type and size of an uploaded proof.

    Returns:
        str: the declared content type
    """
    if uploaded_file is None:
        raise PaymentValidationError("A proof file is required", details={'field': 'proof'})

    allowed = settings.PAYMENTS.get('ALLOWED_PROOF_TYPES', [])
    max_size = settings.PAYMENTS.get('MAX_PROOF_SIZE', 5 * 1024 * 1024)
    content_type = getattr(uploaded_file, 'content_type', '') or ''

    if content_type not in allowed:
        raise PaymentValidationError(
            f"Unsupported proof file type: {content_type or 'unknown'}",
            details={'field': 'proof', 'allowed_types': list(allowed)}
        )

    if uploaded_file.size > max_size:
        raise PaymentValidationError(
            f"Proof file exceeds the maximum size of {max_size} bytes",
            details={'field': 'proof', 'size': uploaded_file.size}
        )

    return content_type


def clean_file_name(name):
    return os.path.basename(name or '')[:255]


# =============================================================================
# SERIALIZATION HELPERS
# =============================================================================

def money(value):
    """Decimal to a 2dp string for JSON payloads"""
    if value is None:
        return None
    return f"{Decimal(value):.2f}"


def serialize_transaction(txn):
    return {
        'id': str(txn.id),
        'order_id': txn.order_id,
        'amount': money(txn.amount_paid),
        'status': txn.status,
        'payment_method': txn.payment_method,
        'payment_id': txn.payment_id,
        'payment_date': txn.payment_date.isoformat() if txn.payment_date else None,
        'created_at': txn.created_at.isoformat() if txn.created_at else None,
    }


def serialize_account(account, include_transactions=False):
    data = {
        'id': str(account.id),
        'student_id': str(account.student_id),
        'student_name': account.student.get_full_name(),
        'batch_id': str(account.batch_id),
        'batch': str(account.batch),
        'full_amount_payable': money(account.full_amount_payable),
        'amount_paid': money(account.amount_paid),
        'remaining_balance': money(account.remaining_balance),
        'payment_percentage': money(account.get_payment_percentage()),
        'payment_completed': account.payment_completed,
    }
    if include_transactions:
        data['transactions'] = [
            serialize_transaction(txn)
            for txn in account.transactions.order_by('created_at')
        ]
    return data


def serialize_aggregate(aggregate):
    return {
        'batch_id': str(aggregate.batch_id),
        'batch': str(aggregate.batch),
        'no_of_participants': aggregate.no_of_participants,
        'paid_no_of_participants': aggregate.paid_no_of_participants,
        'seats_remaining': aggregate.seats_remaining,
        'revenue_received_total': money(aggregate.revenue_received_total),
        'all_fees_collected_status': aggregate.all_fees_collected_status,
    }


def serialize_proof(proof):
    return {
        'id': str(proof.id),
        'transaction_id': str(proof.transaction_id),
        'file_name': proof.file_name,
        'file_type': proof.file_type,
        'status': proof.status,
        'is_active': proof.is_active,
        'reviewed_at': proof.reviewed_at.isoformat() if proof.reviewed_at else None,
        'reviewed_by': getattr(proof.get_reviewed_by_user(), 'username', None),
    }

# utils/audit.py

import logging
from django.db import DatabaseError, transaction

audit_logger = logging.getLogger("financial_audit")
logger = logging.getLogger(__name__)


def log_financial_activity(
    action,
    user=None,
    request=None,
    target_object=None,
    amount=None,
    student=None,
    old_values=None,
    new_values=None,
    notes=None,
    risk_level='LOW',
    additional_data=None,
    is_automated=False,
    currency=None,
):
    """
    Log financial activity for audit purposes using FinancialAuditLog.

    Audit failures are logged and swallowed: a missing audit row must never
    roll back or fail a ledger operation that already succeeded.

    Args:
        action (str): Type of financial action (e.g., PAYMENT_RECEIVE).
        user (User instance, optional): User performing the action.
        request (HttpRequest, optional): To log IP and user agent.
        target_object (Model instance, optional): Object affected.
        amount (Decimal, optional): Amount involved in the action.
        student (Student instance, optional): Related student.
        old_values (dict, optional): Values before the change.
        new_values (dict, optional): Values after the change.
        notes (str, optional): Additional notes or comments.
        risk_level (str, optional): 'LOW', 'MEDIUM', 'HIGH' or 'CRITICAL'.
        additional_data (dict, optional): Extra context-specific data.
        is_automated (bool, optional): Whether action is automated.
        currency (str, optional): Currency code, e.g. 'LKR'.
    """
    from utils.models import FinancialAuditLog

    if user is None and request is not None and getattr(request, 'user', None) is not None:
        if request.user.is_authenticated:
            user = request.user

    audit_logger.info(
        f"{action} risk={risk_level} amount={amount} "
        f"object={target_object!s} notes={notes or ''}"
    )

    try:
        # savepoint: a failed audit insert must not break the caller's transaction
        with transaction.atomic():
            return FinancialAuditLog.log_financial_action(
                action=action,
                user=user,
                request=request,
                target_object=target_object,
                amount=amount,
                currency=currency,
                student=student,
                old_values=old_values,
                new_values=new_values,
                notes=notes,
                risk_level=risk_level,
                additional_data=additional_data or {},
                is_automated=is_automated,
            )
    except DatabaseError as e:
        logger.error(f"Error in financial activity logging: {e}", exc_info=True)
        return None

# utils/models.py

"""
Base models for the payment ledger with audit trail support.

Key Features:
- UUID primary keys and timezone-aware timestamps
- User and IP tracking from the thread-local request context
- Change reason tracking
- Financial audit logging for ledger-affecting operations
"""

from django.db import models
from django.utils import timezone
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
import uuid
import logging
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)


# =============================================================================
# BASE MODEL
# =============================================================================

class BaseModel(models.Model):
    """
    Abstract base model with audit trail capabilities.

    Features:
    - Automatic user tracking (who created/updated)
    - Real IP address tracking (where operations came from)
    - Change reason tracking (why changes were made)

    Audit fields are filled from the request context set by
    ``utils.middleware.AuditContextMiddleware``. Values assigned explicitly
    before the first save are never overwritten.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    created_at = models.DateTimeField("Created At", db_index=True)
    updated_at = models.DateTimeField("Updated At", db_index=True)

    # CharField so the ledger never needs an FK into the auth tables
    created_by_id = models.CharField(
        "Created By ID",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of user who created this record"
    )
    updated_by_id = models.CharField(
        "Updated By ID",
        max_length=50,
        null=True,
        blank=True,
        db_index=True,
        help_text="ID of user who last updated this record"
    )

    created_from_ip = models.GenericIPAddressField("Created From IP", null=True, blank=True)
    updated_from_ip = models.GenericIPAddressField("Updated From IP", null=True, blank=True)

    change_reason = models.CharField(
        "Change Reason",
        max_length=255,
        blank=True,
        null=True,
        help_text="Explanation for why this change was made"
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        """
        Override save to:
        1. Set timestamps
        2. Populate audit trail fields (created_by, updated_by, IPs)
        """
        from utils.context import get_request_context

        is_new = self._state.adding
        now = timezone.now()

        if is_new:
            if not self.created_at:
                self.created_at = now
            if not self.updated_at:
                self.updated_at = now
        else:
            self.updated_at = now

        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'updated_at'}

        context = get_request_context()

        if context:
            user = context.get('user')
            ip_address = context.get('ip_address')

            if is_new:
                if user and not self.created_by_id:
                    self.created_by_id = str(user.pk)
                if ip_address and not self.created_from_ip:
                    self.created_from_ip = ip_address

            if user:
                self.updated_by_id = str(user.pk)
            if ip_address:
                self.updated_from_ip = ip_address

            if update_fields is not None:
                kwargs['update_fields'] |= {'updated_by_id', 'updated_from_ip'}
        elif is_new:
            logger.debug(
                f"No request context available when creating {self.__class__.__name__}. "
                f"Audit fields will not be populated."
            )

        return super().save(*args, **kwargs)


# =============================================================================
# FINANCIAL AUDIT LOG
# =============================================================================

class FinancialAuditLog(models.Model):
    """
    Audit log for ledger operations and sensitive administrative actions.
    Rows are append-only.
    """

    FINANCIAL_ACTIONS = [
        ('ACCOUNT_CREATE', 'Payment Account Opened'),
        ('ACCOUNT_DELETE', 'Payment Account Deleted'),
        ('PAYMENT_INITIATE', 'Online Payment Initiated'),
        ('PAYMENT_RECEIVE', 'Payment Received'),
        ('PAYMENT_FAIL', 'Payment Failed'),
        ('PAYMENT_MISMATCH', 'Gateway Amount Mismatch'),
        ('PAYMENT_REFUND_SIMULATED', 'Refund Simulated'),
        ('PROOF_SUBMIT', 'Payment Proof Submitted'),
        ('PROOF_REVIEW', 'Payment Proof Reviewed'),
        ('RECONCILIATION', 'Account Reconciliation'),
        ('BATCH_RESYNC', 'Batch Revenue Resync'),
        ('WEBHOOK_REJECT', 'Gateway Notification Rejected'),
    ]

    RISK_LEVELS = [
        ('LOW', 'Low Risk'),
        ('MEDIUM', 'Medium Risk'),
        ('HIGH', 'High Risk'),
        ('CRITICAL', 'Critical Risk'),
    ]

    id = models.AutoField(primary_key=True)
    timestamp = models.DateTimeField(db_index=True)
    action = models.CharField(max_length=30, choices=FINANCIAL_ACTIONS, db_index=True)

    user_id = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    user_name = models.CharField(max_length=200, null=True, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(null=True, blank=True)

    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.SET_NULL,
        null=True,
        blank=True
    )
    object_id = models.CharField(max_length=100, null=True, blank=True)
    content_object = GenericForeignKey('content_type', 'object_id')
    object_description = models.CharField(max_length=500, null=True, blank=True)

    amount_involved = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Monetary amount involved in the action"
    )
    currency = models.CharField(max_length=3, null=True, blank=True)

    student_id = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    student_name = models.CharField(max_length=200, null=True, blank=True)

    old_values = models.JSONField(null=True, blank=True, help_text="Values before change")
    new_values = models.JSONField(null=True, blank=True, help_text="Values after change")

    risk_level = models.CharField(max_length=10, choices=RISK_LEVELS, default='LOW', db_index=True)
    additional_data = models.JSONField(default=dict, blank=True)
    notes = models.TextField(null=True, blank=True)
    is_automated = models.BooleanField(
        default=False,
        help_text="Whether this action was performed by the system (e.g. a gateway callback)"
    )

    class Meta:
        verbose_name = "Financial Audit Log"
        verbose_name_plural = "Financial Audit Logs"
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['timestamp', 'action'], name='utils_finan_timesta_6f1c2e_idx'),
            models.Index(fields=['user_id', 'timestamp'], name='utils_finan_user_id_3b9d4a_idx'),
            models.Index(fields=['student_id', 'timestamp'], name='utils_finan_student_8e2f7b_idx'),
            models.Index(fields=['risk_level', 'timestamp'], name='utils_finan_risk_le_5a0c91_idx'),
        ]

    def __str__(self):
        return f"{self.get_action_display()} at {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self.timestamp:
            self.timestamp = timezone.now()
        return super().save(*args, **kwargs)

    @classmethod
    def log_financial_action(
        cls,
        action,
        user=None,
        request=None,
        target_object=None,
        amount=None,
        student=None,
        old_values=None,
        new_values=None,
        risk_level='LOW',
        additional_data=None,
        notes=None,
        currency=None,
        is_automated=False,
    ):
        """
        Create a financial audit log entry.

        Example:
            FinancialAuditLog.log_financial_action(
                action='PAYMENT_RECEIVE',
                user=request.user,
                target_object=transaction,
                amount=transaction.amount,
                student=transaction.account.student,
                notes='Completed by gateway notification'
            )
        """
        log_data = {
            'action': action,
            'risk_level': risk_level,
            'timestamp': timezone.now(),
            'notes': (notes or '')[:2000],
            'old_values': old_values,
            'new_values': new_values,
            'additional_data': additional_data or {},
            'is_automated': bool(is_automated),
        }

        if currency:
            log_data['currency'] = str(currency)[:3].upper()

        if amount is not None:
            try:
                log_data['amount_involved'] = Decimal(str(amount))
            except (ValueError, InvalidOperation, TypeError):
                logger.warning(f"Invalid amount for financial audit log: {amount}")

        if user is not None and getattr(user, 'is_authenticated', False):
            full_name = user.get_full_name() or user.get_username()
            log_data.update({
                'user_id': str(user.pk),
                'user_name': full_name[:200],
            })

        if request is not None:
            meta = getattr(request, 'META', {})
            xff = meta.get('HTTP_X_FORWARDED_FOR')
            log_data.update({
                'ip_address': xff.split(',')[0].strip() if xff else meta.get('REMOTE_ADDR') or None,
                'user_agent': meta.get('HTTP_USER_AGENT', '')[:512],
            })

        if target_object is not None:
            log_data.update({
                'content_type': ContentType.objects.get_for_model(target_object),
                'object_id': str(target_object.pk),
                'object_description': str(target_object)[:500],
            })

        if student is not None:
            log_data.update({
                'student_id': str(student.pk),
                'student_name': str(student)[:200],
            })

        return cls.objects.create(**log_data)

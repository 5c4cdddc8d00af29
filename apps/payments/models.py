# payments/models.py

"""
Installment Payment Ledger Models

- PaymentAccount: one per (student, course batch), the payer's running total
- PaymentTransaction: one per payment attempt (installment, retry, correction)
- PaymentProof: uploaded evidence for a manual transaction
- BatchRevenueAggregate: materialized per-batch view over completed accounts

amount_paid / payment_completed on PaymentAccount and every column of
BatchRevenueAggregate are written only by payments.services.ReconciliationService.

All user tracking handled automatically by BaseModel
"""

import os
import logging
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from utils.models import BaseModel
from students.models import Student
from courses.models import CourseBatch

logger = logging.getLogger(__name__)


def proof_upload_to(instance, filename):
    """Storage key for proof files, e.g. payment_proofs/2026/10/<uuid>_receipt.pdf"""
    pattern = settings.PAYMENTS.get('PROOF_UPLOAD_TO', 'payment_proofs/%Y/%m/')
    directory = timezone.now().strftime(pattern)
    return os.path.join(directory, f"{instance.id}_{os.path.basename(filename)}")


# =============================================================================
# PAYMENT ACCOUNT
# =============================================================================

class PaymentAccount(BaseModel):
    """A student's payable and paid totals toward one course batch"""

    # -------------------------------------------------------------------------
    # CORE RELATIONSHIPS
    # -------------------------------------------------------------------------

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='payment_accounts',
        db_column='student_id'
    )
    batch = models.ForeignKey(
        CourseBatch,
        verbose_name="Course Batch",
        on_delete=models.CASCADE,
        related_name='payment_accounts',
        db_column='courseBatch_id'
    )

    # -------------------------------------------------------------------------
    # AMOUNTS
    # -------------------------------------------------------------------------

    full_amount_payable = models.DecimalField(
        "Full Amount Payable",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Fixed at account creation from the batch cost summary"
    )
    amount_paid = models.DecimalField(
        "Amount Paid",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Sum of completed transactions (net)"
    )
    payment_completed = models.BooleanField(
        "Payment Completed",
        default=False,
        db_index=True
    )

    class Meta:
        db_table = 'student_payments'
        verbose_name = "Payment Account"
        verbose_name_plural = "Payment Accounts"
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'batch'],
                name='unique_student_courseBatch'
            ),
        ]
        indexes = [
            models.Index(fields=['batch', 'payment_completed'], name='student_pay_courseB_9a2d1f_idx'),
        ]

    def __str__(self):
        return f"{self.student.get_full_name()} - {self.batch}"

    # -------------------------------------------------------------------------
    # HELPER METHODS
    # -------------------------------------------------------------------------

    @property
    def remaining_balance(self):
        """Net amount still payable, never negative"""
        return max(self.full_amount_payable - self.amount_paid, Decimal('0.00'))

    def get_payment_percentage(self):
        if not self.full_amount_payable:
            return Decimal('0.00')
        return (self.amount_paid / self.full_amount_payable * 100).quantize(Decimal('0.01'))


# =============================================================================
# PAYMENT TRANSACTION
# =============================================================================

class PaymentTransaction(BaseModel):
    """One payment attempt; moves pending -> completed | failed exactly once"""

    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_FAILED)

    METHOD_MANUAL = 'manual'
    METHOD_ONLINE = 'online'

    PAYMENT_METHOD_CHOICES = [
        (METHOD_MANUAL, 'Manual'),
        (METHOD_ONLINE, 'Online'),
    ]

    account = models.ForeignKey(
        PaymentAccount,
        verbose_name="Payment Account",
        on_delete=models.CASCADE,
        related_name='transactions',
        db_column='student_payment_id'
    )
    order_id = models.CharField(
        "Order ID",
        max_length=100,
        unique=True,
        help_text="System-generated gateway correlation key"
    )
    amount_paid = models.DecimalField(
        "Amount (Net)",
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    status = models.CharField(
        "Status",
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True
    )
    payment_id = models.CharField(
        "Gateway Payment ID",
        max_length=255,
        null=True,
        blank=True
    )
    payment_method = models.CharField(
        "Payment Method",
        max_length=10,
        choices=PAYMENT_METHOD_CHOICES,
        default=METHOD_MANUAL
    )
    payment_date = models.DateTimeField("Payment Date", null=True, blank=True)

    class Meta:
        db_table = 'student_payment_transactions'
        verbose_name = "Payment Transaction"
        verbose_name_plural = "Payment Transactions"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['account', 'status'], name='student_pay_student_4e7b0c_idx'),
        ]

    def __str__(self):
        return f"{self.order_id} ({self.status}) {self.amount_paid}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def net_amount(self):
        from payments.fees import NetAmount
        return NetAmount(self.amount_paid)


# =============================================================================
# PAYMENT PROOF
# =============================================================================

class PaymentProof(BaseModel):
    """Uploaded evidence of an offline payment, awaiting administrative review"""

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    transaction = models.ForeignKey(
        PaymentTransaction,
        verbose_name="Transaction",
        on_delete=models.CASCADE,
        related_name='proofs',
        db_column='transaction_id'
    )
    file = models.FileField(
        "File",
        upload_to=proof_upload_to,
        max_length=500,
        db_column='file_path'
    )
    file_name = models.CharField("File Name", max_length=255, blank=True)
    file_type = models.CharField("File Type", max_length=50, blank=True)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        verbose_name="Uploaded By",
        on_delete=models.PROTECT,
        related_name='payment_proofs',
        db_column='uploaded_by'
    )
    status = models.CharField(
        "Status",
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        db_index=True
    )
    is_active = models.BooleanField("Is Active", default=True)

    # -------------------------------------------------------------------------
    # REVIEW TRACKING
    # -------------------------------------------------------------------------

    reviewed_by_id = models.CharField(
        "Reviewed By ID",
        max_length=50,
        null=True,
        blank=True
    )
    reviewed_at = models.DateTimeField("Reviewed At", null=True, blank=True)
    review_notes = models.TextField("Review Notes", blank=True)

    class Meta:
        db_table = 'student_payment_proofs'
        verbose_name = "Payment Proof"
        verbose_name_plural = "Payment Proofs"
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.file_name or self.file.name} ({self.status})"

    def get_reviewed_by_user(self):
        """Get the user who reviewed this proof"""
        if not self.reviewed_by_id:
            return None
        from django.contrib.auth import get_user_model
        User = get_user_model()
        return User.objects.filter(pk=self.reviewed_by_id).first()


# =============================================================================
# BATCH REVENUE AGGREGATE
# =============================================================================

class BatchRevenueAggregate(BaseModel):
    """
    Materialized per-batch revenue view.

    Always recomputable from the batch's completed payment accounts; see
    ReconciliationService.resync_batch.
    """

    batch = models.OneToOneField(
        CourseBatch,
        verbose_name="Course Batch",
        on_delete=models.CASCADE,
        related_name='revenue_aggregate',
        db_column='courseBatch_id'
    )
    no_of_participants = models.PositiveIntegerField(
        "Participant Capacity",
        default=0
    )
    paid_no_of_participants = models.PositiveIntegerField(
        "Paid Participants",
        default=0
    )
    revenue_received_total = models.DecimalField(
        "Revenue Received",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00')
    )
    all_fees_collected_status = models.BooleanField(
        "Capacity Full",
        default=False
    )

    class Meta:
        db_table = 'course_revenue_summary'
        verbose_name = "Batch Revenue Aggregate"
        verbose_name_plural = "Batch Revenue Aggregates"

    def __str__(self):
        return (
            f"{self.batch}: {self.paid_no_of_participants}/{self.no_of_participants} paid, "
            f"{self.revenue_received_total}"
        )

    @property
    def seats_remaining(self):
        return max(self.no_of_participants - self.paid_no_of_participants, 0)

# payments/services.py

"""
Installment Ledger Operations

- CapacityGuard: seat check before a student's first payment toward a batch
- LedgerStore: accounts and transaction attempts, the source of truth
- ReconciliationService: derives account totals and the batch aggregate from
  the transaction log
- ManualPaymentService: proof-of-payment submission and administrative review

Online gateway initiation and notifications live in payments/gateway.py.
"""

from collections import namedtuple
from decimal import Decimal
import logging

from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from django.utils import timezone

from accounts.permissions import is_privileged
from courses.services import fetch_full_amount_payable
from payments.exceptions import (
    AmountExceedsRemainingBalance,
    CapacityExceeded,
    DuplicateAccount,
    PaymentValidationError,
    ProofInactive,
    RevenueSummaryNotFound,
    TransactionAlreadyFinal,
)
from payments.fees import NetAmount
from payments.models import (
    BatchRevenueAggregate,
    PaymentAccount,
    PaymentProof,
    PaymentTransaction,
)
from payments.utils import (
    clean_file_name,
    generate_manual_payment_id,
    generate_order_id,
    validate_proof_file,
)
from utils.audit import log_financial_activity

logger = logging.getLogger(__name__)

ReconcileResult = namedtuple('ReconcileResult', ['amount_paid', 'completed', 'completed_changed'])
DeletionResult = namedtuple('DeletionResult', ['refund_simulated', 'amount_reversed', 'message'])


# =============================================================================
# CAPACITY GUARD
# =============================================================================

class CapacityGuard:
    """
    Admission check for first-time payers.

    Capacity is consumed when a student opens an account (first payment),
    not at full settlement. The check is best-effort check-then-act:
    concurrent first payments near the last seat may over-admit by at most
    the number of racing requests.
    """

    @staticmethod
    def check(batch):
        aggregate = BatchRevenueAggregate.objects.filter(batch=batch).first()
        if aggregate is None:
            raise RevenueSummaryNotFound(details={'batch_id': str(batch.pk)})

        if aggregate.paid_no_of_participants >= aggregate.no_of_participants:
            logger.info(
                f"Capacity reached for batch {batch.pk}: "
                f"{aggregate.paid_no_of_participants}/{aggregate.no_of_participants}"
            )
            raise CapacityExceeded(
                details={
                    'batch_id': str(batch.pk),
                    'capacity': aggregate.no_of_participants,
                    'paid_participants': aggregate.paid_no_of_participants,
                }
            )

        return aggregate


# =============================================================================
# LEDGER STORE
# =============================================================================

class LedgerStore:
    """
    Transactional record of payment accounts and transaction attempts.

    amount_paid and payment_completed are never written here; see
    ReconciliationService.reconcile.
    """

    @staticmethod
    def create_account(student, batch, user=None, request=None):
        """
        Open the payment account for (student, batch), freezing the batch's
        current amount payable on it.

        Raises:
            CostSummaryNotFound: the batch has no cost summary
            DuplicateAccount: an account for the pair already exists
        """
        full_amount_payable = fetch_full_amount_payable(batch)

        try:
            # own savepoint so a unique-key collision leaves the outer transaction usable
            with transaction.atomic():
                account = PaymentAccount.objects.create(
                    student=student,
                    batch=batch,
                    full_amount_payable=full_amount_payable,
                )
        except IntegrityError:
            raise DuplicateAccount(
                details={'student_id': str(student.pk), 'batch_id': str(batch.pk)}
            )

        logger.info(
            f"Opened payment account {account.pk} for student {student.pk} "
            f"in batch {batch.pk}: payable {full_amount_payable}"
        )
        log_financial_activity(
            action='ACCOUNT_CREATE',
            user=user,
            request=request,
            target_object=account,
            amount=full_amount_payable,
            student=student,
            new_values={'full_amount_payable': str(full_amount_payable)},
        )
        return account

    @staticmethod
    def get_account(student, batch):
        return (
            PaymentAccount.objects.select_related('student', 'batch')
            .filter(student=student, batch=batch)
            .first()
        )

    @staticmethod
    def get_or_open_account(student, batch, user=None, request=None):
        """
        Fetch the student's account for the batch, opening it under the
        capacity guard when this is the student's first payment.

        Returns:
            tuple: (PaymentAccount, created)
        """
        account = LedgerStore.get_account(student, batch)
        if account is not None:
            return account, False

        CapacityGuard.check(batch)

        try:
            return LedgerStore.create_account(student, batch, user=user, request=request), True
        except DuplicateAccount:
            account = LedgerStore.get_account(student, batch)
            if account is None:
                raise
            logger.info(
                f"Concurrent first payment for student {student.pk} in batch {batch.pk}; "
                f"continuing with account {account.pk}"
            )
            return account, False

    @staticmethod
    def create_transaction(account, amount, method):
        """Record a new pending attempt of ``amount`` (NetAmount) against the account."""
        if not isinstance(amount, NetAmount):
            raise TypeError(f"create_transaction expects a NetAmount, got {type(amount).__name__}")
        if not amount:
            raise PaymentValidationError("Amount must be greater than zero", details={'field': 'amount'})
        if method not in dict(PaymentTransaction.PAYMENT_METHOD_CHOICES):
            raise PaymentValidationError(
                f"Unknown payment method: {method}",
                details={'field': 'payment_method'}
            )

        txn = PaymentTransaction.objects.create(
            account=account,
            order_id=generate_order_id(method),
            amount_paid=amount.value,
            status=PaymentTransaction.STATUS_PENDING,
            payment_method=method,
        )
        logger.info(f"Created {method} transaction {txn.order_id} for account {account.pk}: {amount}")
        return txn

    @staticmethod
    @transaction.atomic
    def update_transaction_status(txn, status, payment_id=None, paid_at=None):
        """
        Move a pending transaction to ``completed`` or ``failed``.

        The row is locked so exactly one caller wins the transition.

        Returns:
            bool: False when the transaction was already terminal (no-op)
        """
        if status not in PaymentTransaction.TERMINAL_STATUSES:
            raise PaymentValidationError(
                f"Invalid target status: {status}",
                details={'field': 'status'}
            )

        locked = PaymentTransaction.objects.select_for_update().get(pk=txn.pk)
        if locked.is_terminal:
            logger.info(f"Transaction {locked.order_id} already {locked.status}; ignoring -> {status}")
            txn.status = locked.status
            txn.payment_id = locked.payment_id
            txn.payment_date = locked.payment_date
            return False

        locked.status = status
        update_fields = ['status']
        if payment_id:
            locked.payment_id = payment_id
            update_fields.append('payment_id')
        if status == PaymentTransaction.STATUS_COMPLETED:
            locked.payment_date = paid_at or timezone.now()
            update_fields.append('payment_date')
        locked.save(update_fields=update_fields)

        txn.status = locked.status
        txn.payment_id = locked.payment_id
        txn.payment_date = locked.payment_date

        logger.info(f"Transaction {locked.order_id} -> {status}")
        return True

    @staticmethod
    def sum_completed_transactions(account):
        total = (
            PaymentTransaction.objects.filter(
                account=account,
                status=PaymentTransaction.STATUS_COMPLETED,
            ).aggregate(total=Sum('amount_paid'))['total']
        )
        return NetAmount(total or Decimal('0.00'))

    @staticmethod
    def delete_account(account):
        """Remove the account with its transactions and proofs. No aggregate upkeep."""
        account_id = account.pk
        account.delete()
        logger.info(f"Deleted payment account {account_id}")


# =============================================================================
# RECONCILIATION SERVICE
# =============================================================================

class ReconciliationService:
    """
    Keeps derived ledger state consistent with the transaction log.

    Every operation recomputes from the log instead of incrementing, so
    re-running after a crash or a duplicate call converges to the same
    values. The one exception is delete_account on a settled account,
    which decrements the aggregate (refund simulation).
    """

    @staticmethod
    @transaction.atomic
    def resync_batch(batch, user=None, request=None):
        """
        Recompute the batch aggregate from the batch's completed accounts.

        Returns:
            BatchRevenueAggregate
        """
        aggregate = (
            BatchRevenueAggregate.objects.select_for_update()
            .filter(batch=batch)
            .first()
        )
        if aggregate is None:
            raise RevenueSummaryNotFound(details={'batch_id': str(batch.pk)})

        totals = PaymentAccount.objects.filter(
            batch=batch,
            payment_completed=True,
        ).aggregate(count=Count('id'), revenue=Sum('amount_paid'))

        paid_count = totals['count'] or 0
        revenue = totals['revenue'] or Decimal('0.00')
        collected = paid_count >= aggregate.no_of_participants

        old_values = {
            'paid_no_of_participants': aggregate.paid_no_of_participants,
            'revenue_received_total': str(aggregate.revenue_received_total),
            'all_fees_collected_status': aggregate.all_fees_collected_status,
        }
        new_values = {
            'paid_no_of_participants': paid_count,
            'revenue_received_total': str(revenue),
            'all_fees_collected_status': collected,
        }

        if old_values == new_values:
            return aggregate

        aggregate.paid_no_of_participants = paid_count
        aggregate.revenue_received_total = revenue
        aggregate.all_fees_collected_status = collected
        aggregate.save(update_fields=[
            'paid_no_of_participants',
            'revenue_received_total',
            'all_fees_collected_status',
        ])

        logger.info(
            f"Resynced batch {batch.pk}: {paid_count}/{aggregate.no_of_participants} paid, "
            f"revenue {revenue}"
        )
        log_financial_activity(
            action='BATCH_RESYNC',
            user=user,
            request=request,
            target_object=aggregate,
            amount=revenue,
            old_values=old_values,
            new_values=new_values,
            is_automated=user is None,
        )
        return aggregate

    @staticmethod
    @transaction.atomic
    def reconcile(account, user=None, request=None):
        """
        Recompute the account's paid total from its completed transactions.

        payment_completed is true only when the total equals the amount
        payable exactly. When the flag changes the batch aggregate is resynced.

        Returns:
            ReconcileResult
        """
        locked = PaymentAccount.objects.select_for_update().get(pk=account.pk)

        total = LedgerStore.sum_completed_transactions(locked).value
        completed = total == locked.full_amount_payable
        completed_changed = completed != locked.payment_completed
        amount_changed = total != locked.amount_paid

        if amount_changed or completed_changed:
            old_values = {
                'amount_paid': str(locked.amount_paid),
                'payment_completed': locked.payment_completed,
            }
            locked.amount_paid = total
            locked.payment_completed = completed
            locked.save(update_fields=['amount_paid', 'payment_completed'])

            logger.info(
                f"Reconciled account {locked.pk}: paid {total} of "
                f"{locked.full_amount_payable}, completed={completed}"
            )
            log_financial_activity(
                action='RECONCILIATION',
                user=user,
                request=request,
                target_object=locked,
                amount=total,
                student=locked.student,
                old_values=old_values,
                new_values={'amount_paid': str(total), 'payment_completed': completed},
                is_automated=user is None,
            )

            if total > locked.full_amount_payable:
                logger.warning(
                    f"Account {locked.pk} overpaid: {total} > {locked.full_amount_payable}"
                )
                log_financial_activity(
                    action='RECONCILIATION',
                    target_object=locked,
                    amount=total - locked.full_amount_payable,
                    student=locked.student,
                    risk_level='HIGH',
                    notes='Completed transactions exceed the amount payable; review required',
                    is_automated=True,
                )

        if completed_changed:
            ReconciliationService.resync_batch(locked.batch, user=user, request=request)

        account.amount_paid = locked.amount_paid
        account.payment_completed = locked.payment_completed

        return ReconcileResult(
            amount_paid=NetAmount(total),
            completed=completed,
            completed_changed=completed_changed,
        )

    @staticmethod
    @transaction.atomic
    def delete_account(account, user=None, request=None):
        """
        Administrative reversal of a payment account.

        A fully settled account decrements the batch aggregate by one seat
        and its paid amount (floored at zero). This is a refund SIMULATION:
        no money moves. A partially settled account is deleted and the
        aggregate resynced from the remaining accounts.

        Returns:
            DeletionResult
        """
        locked = (
            PaymentAccount.objects.select_for_update()
            .select_related('student', 'batch')
            .get(pk=account.pk)
        )
        batch = locked.batch
        student = locked.student
        was_completed = locked.payment_completed
        amount = locked.amount_paid
        snapshot = {
            'account_id': str(locked.pk),
            'full_amount_payable': str(locked.full_amount_payable),
            'amount_paid': str(amount),
            'payment_completed': was_completed,
        }

        log_financial_activity(
            action='ACCOUNT_DELETE',
            user=user,
            request=request,
            target_object=locked,
            amount=amount,
            student=student,
            old_values=snapshot,
            risk_level='MEDIUM',
        )
        LedgerStore.delete_account(locked)

        if not was_completed:
            ReconciliationService.resync_batch(batch, user=user, request=request)
            return DeletionResult(
                refund_simulated=False,
                amount_reversed=NetAmount(Decimal('0.00')),
                message='Payment record deleted and batch revenue resynced.',
            )

        aggregate = (
            BatchRevenueAggregate.objects.select_for_update()
            .filter(batch=batch)
            .first()
        )
        if aggregate is None:
            raise RevenueSummaryNotFound(details={'batch_id': str(batch.pk)})

        old_values = {
            'paid_no_of_participants': aggregate.paid_no_of_participants,
            'revenue_received_total': str(aggregate.revenue_received_total),
            'all_fees_collected_status': aggregate.all_fees_collected_status,
        }
        aggregate.paid_no_of_participants = max(aggregate.paid_no_of_participants - 1, 0)
        aggregate.revenue_received_total = max(
            aggregate.revenue_received_total - amount,
            Decimal('0.00')
        )
        aggregate.all_fees_collected_status = False
        aggregate.save(update_fields=[
            'paid_no_of_participants',
            'revenue_received_total',
            'all_fees_collected_status',
        ])

        message = (
            f"Payment record deleted. Refund simulated: batch revenue reduced by {amount:.2f} "
            f"and one paid seat released. No funds were returned to the payer."
        )
        logger.warning(f"Refund simulated for account {snapshot['account_id']} in batch {batch.pk}: {amount}")
        log_financial_activity(
            action='PAYMENT_REFUND_SIMULATED',
            user=user,
            request=request,
            target_object=aggregate,
            amount=amount,
            student=student,
            old_values=old_values,
            new_values={
                'paid_no_of_participants': aggregate.paid_no_of_participants,
                'revenue_received_total': str(aggregate.revenue_received_total),
                'all_fees_collected_status': False,
            },
            risk_level='HIGH',
            notes=message,
            additional_data={'deleted_account': snapshot},
        )

        return DeletionResult(
            refund_simulated=True,
            amount_reversed=NetAmount(amount),
            message=message,
        )


# =============================================================================
# INSTALLMENT PREPARATION
# =============================================================================

def prepare_installment(student, batch, amount, user=None, request=None):
    """
    Shared entry for online and manual payments: validate the requested
    net amount, open or fetch the account, and enforce the remaining balance.

    Must run inside the caller's atomic block so a rejected request leaves
    no account behind.

    Returns:
        tuple: (PaymentAccount, NetAmount)
    """
    net = NetAmount(amount)
    if not net:
        raise PaymentValidationError("Amount must be greater than zero", details={'field': 'amount'})

    account, _ = LedgerStore.get_or_open_account(student, batch, user=user, request=request)

    remaining = account.full_amount_payable - account.amount_paid
    if net.value > remaining:
        raise AmountExceedsRemainingBalance(requested=net.value, remaining=remaining)

    return account, net


# =============================================================================
# MANUAL PAYMENT SERVICE
# =============================================================================

class ManualPaymentService:
    """Offline payments completed by administrator approval of an uploaded proof"""

    REVIEW_DECISIONS = (
        PaymentProof.STATUS_APPROVED,
        PaymentProof.STATUS_REJECTED,
        PaymentProof.STATUS_PENDING,
    )

    @staticmethod
    def _store_proof(txn, uploaded_file, user, content_type):
        proof = PaymentProof(
            transaction=txn,
            file_name=clean_file_name(uploaded_file.name),
            file_type=content_type,
            uploaded_by=user,
        )
        proof.file.save(proof.file_name, uploaded_file, save=False)
        proof.save()
        return proof

    @staticmethod
    @transaction.atomic
    def submit_manual_payment(student, batch, amount, uploaded_file, user, request=None):
        """
        Record an offline installment awaiting review.

        Returns:
            tuple: (PaymentTransaction, PaymentProof)
        """
        content_type = validate_proof_file(uploaded_file)
        account, net = prepare_installment(student, batch, amount, user=user, request=request)

        txn = LedgerStore.create_transaction(account, net, PaymentTransaction.METHOD_MANUAL)
        proof = ManualPaymentService._store_proof(txn, uploaded_file, user, content_type)

        log_financial_activity(
            action='PROOF_SUBMIT',
            user=user,
            request=request,
            target_object=txn,
            amount=net.value,
            student=student,
            additional_data={'proof_id': str(proof.id), 'order_id': txn.order_id},
        )
        return txn, proof

    @staticmethod
    @transaction.atomic
    def resubmit_proof(txn, uploaded_file, user, request=None):
        """Attach a replacement proof to a pending manual transaction."""
        locked = PaymentTransaction.objects.select_for_update().get(pk=txn.pk)
        if locked.is_terminal:
            raise TransactionAlreadyFinal(details={'order_id': locked.order_id, 'status': locked.status})
        if locked.payment_method != PaymentTransaction.METHOD_MANUAL:
            raise PaymentValidationError(
                "Proofs can only be attached to manual payments",
                details={'order_id': locked.order_id}
            )

        content_type = validate_proof_file(uploaded_file)

        deactivated = locked.proofs.filter(is_active=True).update(is_active=False)
        proof = ManualPaymentService._store_proof(locked, uploaded_file, user, content_type)

        logger.info(f"New proof {proof.id} for {locked.order_id}; {deactivated} earlier proof(s) deactivated")
        log_financial_activity(
            action='PROOF_SUBMIT',
            user=user,
            request=request,
            target_object=locked,
            amount=locked.amount_paid,
            student=locked.account.student,
            additional_data={'proof_id': str(proof.id), 'resubmission': True},
        )
        return proof

    @staticmethod
    @transaction.atomic
    def review_proof(proof, decision, reviewer, notes='', request=None):
        """
        Apply an administrator decision to a proof and its transaction.

        approved: transaction completed and the account reconciled
        rejected: proof rejected and deactivated, transaction failed
        pending: proof status reset; the transaction is untouched

        Raises:
            PermissionDenied: reviewer is not privileged
            TransactionAlreadyFinal: decision conflicts with a terminal transaction
            ProofInactive: the proof was superseded by a resubmission
        """
        if not is_privileged(reviewer):
            raise PermissionDenied("Only finance administrators can review payment proofs")
        if decision not in ManualPaymentService.REVIEW_DECISIONS:
            raise PaymentValidationError(
                f"Invalid review decision: {decision}",
                details={'field': 'status', 'allowed': list(ManualPaymentService.REVIEW_DECISIONS)}
            )

        proof = PaymentProof.objects.select_for_update().get(pk=proof.pk)
        txn = (
            PaymentTransaction.objects.select_for_update()
            .select_related('account', 'account__student')
            .get(pk=proof.transaction_id)
        )
        old_status = proof.status

        if decision == PaymentProof.STATUS_APPROVED and txn.status == PaymentTransaction.STATUS_FAILED:
            raise TransactionAlreadyFinal(
                "Cannot approve a proof for a failed transaction; a new submission is required",
                details={'order_id': txn.order_id}
            )
        if decision == PaymentProof.STATUS_REJECTED and txn.status == PaymentTransaction.STATUS_COMPLETED:
            raise TransactionAlreadyFinal(
                "Cannot reject a proof for a completed transaction",
                details={'order_id': txn.order_id}
            )
        if decision == PaymentProof.STATUS_PENDING and txn.is_terminal:
            raise TransactionAlreadyFinal(details={'order_id': txn.order_id, 'status': txn.status})
        if not proof.is_active:
            raise ProofInactive(details={'proof_id': str(proof.pk), 'order_id': txn.order_id})

        proof.status = decision
        proof.is_active = decision != PaymentProof.STATUS_REJECTED
        proof.reviewed_by_id = str(reviewer.pk)
        proof.reviewed_at = timezone.now()
        proof.review_notes = notes or ''
        proof.save(update_fields=['status', 'is_active', 'reviewed_by_id', 'reviewed_at', 'review_notes'])

        if decision == PaymentProof.STATUS_APPROVED:
            if LedgerStore.update_transaction_status(
                txn,
                PaymentTransaction.STATUS_COMPLETED,
                payment_id=generate_manual_payment_id(proof),
                paid_at=proof.reviewed_at,
            ):
                log_financial_activity(
                    action='PAYMENT_RECEIVE',
                    user=reviewer,
                    request=request,
                    target_object=txn,
                    amount=txn.amount_paid,
                    student=txn.account.student,
                    notes=f"Manual payment approved ({txn.order_id})",
                )
            ReconciliationService.reconcile(txn.account, user=reviewer, request=request)

        elif decision == PaymentProof.STATUS_REJECTED:
            if LedgerStore.update_transaction_status(txn, PaymentTransaction.STATUS_FAILED):
                log_financial_activity(
                    action='PAYMENT_FAIL',
                    user=reviewer,
                    request=request,
                    target_object=txn,
                    amount=txn.amount_paid,
                    student=txn.account.student,
                    notes=f"Proof rejected ({txn.order_id})",
                )

        logger.info(f"Proof {proof.id} reviewed by {reviewer.pk}: {old_status} -> {decision}")
        log_financial_activity(
            action='PROOF_REVIEW',
            user=reviewer,
            request=request,
            target_object=proof,
            amount=txn.amount_paid,
            student=txn.account.student,
            old_values={'status': old_status},
            new_values={'status': decision, 'transaction_status': txn.status},
            notes=notes,
            risk_level='MEDIUM',
        )

        proof.transaction = txn
        return proof

"""Tests for manual payments: proof submission, resubmission and review."""

from decimal import Decimal

import pytest
from django.core.exceptions import PermissionDenied

from payments.exceptions import (
    AmountExceedsRemainingBalance,
    PaymentValidationError,
    ProofInactive,
    TransactionAlreadyFinal,
)
from payments.models import PaymentAccount, PaymentProof, PaymentTransaction
from payments.services import ManualPaymentService
from utils.models import FinancialAuditLog


pytestmark = pytest.mark.django_db


@pytest.fixture
def submitted(student, batch, student_user, pdf_upload):
    """A pending 1000.00 manual installment with its proof"""
    return ManualPaymentService.submit_manual_payment(
        student, batch, '1000.00', pdf_upload(), user=student_user
    )


class TestSubmit:

    def test_creates_pending_transaction_and_proof(self, submitted, student):
        txn, proof = submitted

        assert txn.status == PaymentTransaction.STATUS_PENDING
        assert txn.payment_method == PaymentTransaction.METHOD_MANUAL
        assert txn.order_id.startswith('MANUAL_')
        assert proof.status == PaymentProof.STATUS_PENDING
        assert proof.is_active is True
        assert proof.file_type == 'application/pdf'
        assert proof.file_name == 'receipt.pdf'
        assert proof.file.name.endswith('receipt.pdf')

        account = PaymentAccount.objects.get(student=student)
        assert account.amount_paid == Decimal('0.00')
        assert FinancialAuditLog.objects.filter(action='PROOF_SUBMIT').count() == 1

    @pytest.mark.parametrize('content_type', ['text/plain', 'application/zip', ''])
    def test_unsupported_type_creates_nothing(self, student, batch, student_user, pdf_upload, content_type):
        upload = pdf_upload(name='notes.txt', content_type=content_type)

        with pytest.raises(PaymentValidationError):
            ManualPaymentService.submit_manual_payment(student, batch, '1000.00', upload, user=student_user)

        assert not PaymentAccount.objects.exists()
        assert not PaymentTransaction.objects.exists()
        assert not PaymentProof.objects.exists()

    def test_oversized_file(self, student, batch, student_user, pdf_upload):
        upload = pdf_upload(content=b'x' * (1024 * 1024 + 1))
        with pytest.raises(PaymentValidationError):
            ManualPaymentService.submit_manual_payment(student, batch, '1000.00', upload, user=student_user)
        assert not PaymentTransaction.objects.exists()

    def test_image_proof_accepted(self, student, batch, student_user, pdf_upload):
        upload = pdf_upload(name='slip.png', content=b'\x89PNG', content_type='image/png')
        txn, proof = ManualPaymentService.submit_manual_payment(
            student, batch, '250.00', upload, user=student_user
        )
        assert proof.file_type == 'image/png'

    def test_over_remaining_balance(self, student, batch, student_user, pdf_upload):
        with pytest.raises(AmountExceedsRemainingBalance):
            ManualPaymentService.submit_manual_payment(
                student, batch, '5000.01', pdf_upload(), user=student_user
            )
        assert not PaymentAccount.objects.exists()


class TestReview:

    def test_approve_completes_and_reconciles(self, submitted, finance_user):
        txn, proof = submitted

        reviewed = ManualPaymentService.review_proof(proof, 'approved', finance_user, notes='Bank slip verified')

        assert reviewed.status == PaymentProof.STATUS_APPROVED
        assert reviewed.reviewed_by_id == str(finance_user.pk)
        assert reviewed.reviewed_at is not None
        txn.refresh_from_db()
        assert txn.status == PaymentTransaction.STATUS_COMPLETED
        assert txn.payment_id == f"MANUAL-{str(proof.id).split('-')[0].upper()}"
        account = PaymentAccount.objects.get(pk=txn.account_id)
        assert account.amount_paid == Decimal('1000.00')

    def test_double_approve_counts_once(self, submitted, finance_user):
        txn, proof = submitted

        ManualPaymentService.review_proof(proof, 'approved', finance_user)
        ManualPaymentService.review_proof(proof, 'approved', finance_user)

        account = PaymentAccount.objects.get(pk=txn.account_id)
        assert account.amount_paid == Decimal('1000.00')
        assert FinancialAuditLog.objects.filter(action='PAYMENT_RECEIVE').count() == 1
        assert FinancialAuditLog.objects.filter(action='PROOF_REVIEW').count() == 2

    def test_reject_fails_transaction(self, submitted, finance_user):
        txn, proof = submitted

        reviewed = ManualPaymentService.review_proof(proof, 'rejected', finance_user, notes='Illegible')

        assert reviewed.status == PaymentProof.STATUS_REJECTED
        assert reviewed.is_active is False
        assert reviewed.review_notes == 'Illegible'
        txn.refresh_from_db()
        assert txn.status == PaymentTransaction.STATUS_FAILED

    def test_approve_after_reject_refused(self, submitted, finance_user):
        txn, proof = submitted
        ManualPaymentService.review_proof(proof, 'rejected', finance_user)

        with pytest.raises(TransactionAlreadyFinal):
            ManualPaymentService.review_proof(proof, 'approved', finance_user)

        txn.refresh_from_db()
        assert txn.status == PaymentTransaction.STATUS_FAILED

    def test_reject_after_approve_refused(self, submitted, finance_user):
        txn, proof = submitted
        ManualPaymentService.review_proof(proof, 'approved', finance_user)

        with pytest.raises(TransactionAlreadyFinal):
            ManualPaymentService.review_proof(proof, 'rejected', finance_user)

        proof.refresh_from_db()
        assert proof.status == PaymentProof.STATUS_APPROVED

    def test_reset_to_pending(self, submitted, finance_user):
        """Pending only resets the proof while the transaction is still open."""
        txn, proof = submitted

        reviewed = ManualPaymentService.review_proof(proof, 'pending', finance_user)
        assert reviewed.status == PaymentProof.STATUS_PENDING
        txn.refresh_from_db()
        assert txn.status == PaymentTransaction.STATUS_PENDING

        ManualPaymentService.review_proof(proof, 'approved', finance_user)
        with pytest.raises(TransactionAlreadyFinal):
            ManualPaymentService.review_proof(proof, 'pending', finance_user)

    def test_invalid_decision(self, submitted, finance_user):
        _, proof = submitted
        with pytest.raises(PaymentValidationError):
            ManualPaymentService.review_proof(proof, 'maybe', finance_user)

    def test_student_cannot_review(self, submitted, student_user):
        txn, proof = submitted

        with pytest.raises(PermissionDenied):
            ManualPaymentService.review_proof(proof, 'approved', student_user)

        txn.refresh_from_db()
        assert txn.status == PaymentTransaction.STATUS_PENDING

    def test_superuser_can_review(self, submitted, django_user_model):
        admin = django_user_model.objects.create_superuser('root', 'root@example.com', 'pass-1234')
        _, proof = submitted
        reviewed = ManualPaymentService.review_proof(proof, 'approved', admin)
        assert reviewed.status == PaymentProof.STATUS_APPROVED


class TestResubmit:

    def test_replaces_active_proof(self, submitted, student_user, pdf_upload):
        txn, first = submitted

        second = ManualPaymentService.resubmit_proof(txn, pdf_upload(name='clearer.pdf'), user=student_user)

        first.refresh_from_db()
        assert first.is_active is False
        assert second.is_active is True
        assert txn.proofs.count() == 2
        assert txn.proofs.filter(is_active=True).get().pk == second.pk

    def test_superseded_proof_cannot_be_reviewed(self, submitted, student_user, finance_user, pdf_upload):
        """Only the latest proof of a transaction is reviewable; it stays the single active one."""
        txn, first = submitted
        second = ManualPaymentService.resubmit_proof(txn, pdf_upload(name='clearer.pdf'), user=student_user)

        with pytest.raises(ProofInactive):
            ManualPaymentService.review_proof(first, 'approved', finance_user)

        txn.refresh_from_db()
        assert txn.status == PaymentTransaction.STATUS_PENDING
        first.refresh_from_db()
        assert first.is_active is False
        assert first.status == PaymentProof.STATUS_PENDING

        ManualPaymentService.review_proof(second, 'approved', finance_user)
        assert list(txn.proofs.filter(is_active=True).values_list('pk', flat=True)) == [second.pk]

    def test_refused_on_final_transaction(self, submitted, finance_user, student_user, pdf_upload):
        txn, proof = submitted
        ManualPaymentService.review_proof(proof, 'rejected', finance_user)

        with pytest.raises(TransactionAlreadyFinal):
            ManualPaymentService.resubmit_proof(txn, pdf_upload(), user=student_user)

    def test_refused_on_online_transaction(self, account, student_user, add_transaction, pdf_upload):
        txn = add_transaction(account, '100.00', method='online')
        with pytest.raises(PaymentValidationError):
            ManualPaymentService.resubmit_proof(txn, pdf_upload(), user=student_user)

"""Tests for account reconciliation, batch resync and administrative deletion."""

from decimal import Decimal

import pytest

from payments.fees import NetAmount
from payments.models import BatchRevenueAggregate, PaymentAccount
from payments.services import LedgerStore, ReconciliationService
from utils.models import FinancialAuditLog


pytestmark = pytest.mark.django_db


def aggregate_values(batch):
    aggregate = BatchRevenueAggregate.objects.get(batch=batch)
    return (
        aggregate.paid_no_of_participants,
        aggregate.revenue_received_total,
        aggregate.all_fees_collected_status,
    )


class TestReconcile:
    """reconcile(account) derives amount_paid and payment_completed from the log."""

    def test_sum_invariant_over_mixed_history(self, account, add_transaction):
        """amount_paid equals the sum of exactly the completed transactions."""
        add_transaction(account, '1000.00', status='completed')
        add_transaction(account, '500.00', status='failed')
        add_transaction(account, '2000.00', status='completed')
        add_transaction(account, '300.00')

        result = ReconciliationService.reconcile(account)

        account.refresh_from_db()
        assert result.amount_paid == NetAmount('3000.00')
        assert account.amount_paid == Decimal('3000.00')
        assert account.payment_completed is False

    def test_idempotent(self, account, add_transaction):
        """A second reconcile changes nothing."""
        add_transaction(account, '5000.00', status='completed')

        first = ReconciliationService.reconcile(account)
        second = ReconciliationService.reconcile(account)

        assert first.completed is True
        assert first.completed_changed is True
        assert second.amount_paid == first.amount_paid
        assert second.completed is True
        assert second.completed_changed is False

    def test_settlement_counts_participant_once(self, batch, account, add_transaction):
        """5000.00 payable settled by two installments adds exactly one paid participant."""
        add_transaction(account, '2000.00', status='completed')
        ReconciliationService.reconcile(account)
        assert aggregate_values(batch) == (0, Decimal('0.00'), False)

        add_transaction(account, '3000.00', status='completed')
        for _ in range(3):
            ReconciliationService.reconcile(account)

        account.refresh_from_db()
        assert account.payment_completed is True
        assert aggregate_values(batch) == (1, Decimal('5000.00'), False)

    def test_capacity_full_flag(self, make_batch, student, add_transaction):
        batch = make_batch(capacity=1)
        account = LedgerStore.create_account(student, batch)
        add_transaction(account, '5000.00', status='completed')

        ReconciliationService.reconcile(account)

        assert aggregate_values(batch) == (1, Decimal('5000.00'), True)

    def test_overpayment_left_incomplete_and_flagged(self, account, add_transaction):
        """Completed installments beyond the payable never mark the account settled."""
        add_transaction(account, '3000.00', status='completed')
        add_transaction(account, '3000.00', status='completed')

        result = ReconciliationService.reconcile(account)

        assert result.amount_paid == NetAmount('6000.00')
        assert result.completed is False
        assert FinancialAuditLog.objects.filter(
            action='RECONCILIATION', risk_level='HIGH', object_id=str(account.pk)
        ).exists()

    def test_updates_caller_instance(self, account, add_transaction):
        add_transaction(account, '1200.00', status='completed')
        ReconciliationService.reconcile(account)
        assert account.amount_paid == Decimal('1200.00')


class TestResyncBatch:
    """resync_batch is the correctness anchor for the aggregate."""

    def test_resync_matches_incremental_maintenance(
        self, make_student, batch, add_transaction
    ):
        """Recomputing from scratch yields what reconcile maintained."""
        for index, paid in enumerate(['5000.00', '5000.00', '2500.00']):
            student = make_student(f"Student{index}")
            account = LedgerStore.create_account(student, batch)
            add_transaction(account, paid, status='completed')
            ReconciliationService.reconcile(account)

        maintained = aggregate_values(batch)
        assert maintained == (2, Decimal('10000.00'), False)

        BatchRevenueAggregate.objects.filter(batch=batch).update(
            paid_no_of_participants=7,
            revenue_received_total=Decimal('1.00'),
            all_fees_collected_status=True,
        )
        ReconciliationService.resync_batch(batch)

        assert aggregate_values(batch) == maintained

    def test_resync_is_idempotent(self, batch, account, add_transaction):
        add_transaction(account, '5000.00', status='completed')
        ReconciliationService.reconcile(account)

        before = aggregate_values(batch)
        ReconciliationService.resync_batch(batch)
        ReconciliationService.resync_batch(batch)
        assert aggregate_values(batch) == before

    def test_resync_writes_audit_only_on_change(self, batch):
        ReconciliationService.resync_batch(batch)
        assert not FinancialAuditLog.objects.filter(action='BATCH_RESYNC').exists()

        BatchRevenueAggregate.objects.filter(batch=batch).update(paid_no_of_participants=3)
        ReconciliationService.resync_batch(batch)
        assert FinancialAuditLog.objects.filter(action='BATCH_RESYNC').count() == 1


class TestDeleteAccount:
    """Administrative deletion: resync for partial accounts, simulated refund for settled ones."""

    def test_partial_account_deleted_and_batch_resynced(self, batch, account, add_transaction):
        add_transaction(account, '1000.00', status='completed')
        ReconciliationService.reconcile(account)

        result = ReconciliationService.delete_account(account)

        assert result.refund_simulated is False
        assert not PaymentAccount.objects.filter(pk=account.pk).exists()
        assert aggregate_values(batch) == (0, Decimal('0.00'), False)

    def test_settled_account_decrements_as_simulated_refund(
        self, make_batch, student, add_transaction
    ):
        batch = make_batch(capacity=1)
        account = LedgerStore.create_account(student, batch)
        add_transaction(account, '5000.00', status='completed')
        ReconciliationService.reconcile(account)
        assert aggregate_values(batch) == (1, Decimal('5000.00'), True)

        result = ReconciliationService.delete_account(account)

        assert result.refund_simulated is True
        assert result.amount_reversed == NetAmount('5000.00')
        assert 'Refund simulated' in result.message
        assert aggregate_values(batch) == (0, Decimal('0.00'), False)
        assert FinancialAuditLog.objects.filter(
            action='PAYMENT_REFUND_SIMULATED', risk_level='HIGH'
        ).exists()

    def test_decrement_floors_at_zero(self, batch, account, add_transaction):
        """A drifted aggregate never goes negative."""
        add_transaction(account, '5000.00', status='completed')
        ReconciliationService.reconcile(account)
        BatchRevenueAggregate.objects.filter(batch=batch).update(
            paid_no_of_participants=0,
            revenue_received_total=Decimal('100.00'),
        )

        ReconciliationService.delete_account(account)

        assert aggregate_values(batch) == (0, Decimal('0.00'), False)

    def test_transactions_removed_with_account(self, account, add_transaction):
        txn = add_transaction(account, '100.00')
        ReconciliationService.delete_account(account)
        assert not type(txn).objects.filter(pk=txn.pk).exists()

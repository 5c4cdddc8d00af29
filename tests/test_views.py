"""HTTP tests for the payment endpoints."""

import hashlib
import json
from decimal import Decimal

import pytest
from django.urls import reverse

from payments.models import BatchRevenueAggregate, PaymentAccount, PaymentProof, PaymentTransaction
from payments.services import ReconciliationService

from .conftest import MERCHANT_ID, MERCHANT_SECRET


pytestmark = pytest.mark.django_db


def md5_upper(value):
    return hashlib.md5(value.encode()).hexdigest().upper()


def post_json(client, url, data):
    return client.post(url, data=json.dumps(data), content_type='application/json')


@pytest.fixture
def student_client(client, student, student_user):
    client.force_login(student_user)
    return client


@pytest.fixture
def finance_client(client, finance_user):
    client.force_login(finance_user)
    return client


class TestPayHereInitiate:
    @property
    def url(self):
        return reverse('payments:payhere_initiate')

    def test_requires_login(self, client, batch):
        response = post_json(client, self.url, {'batch': str(batch.pk), 'amount': '1000.00'})
        assert response.status_code == 302

    def test_returns_signed_payload(self, student_client, batch):
        response = post_json(student_client, self.url, {'batch': str(batch.pk), 'amount': '1000.00'})

        assert response.status_code == 201
        payment = response.json()['payment']
        assert payment['amount'] == '1034.12'
        assert payment['net_amount'] == '1000.00'
        assert PaymentTransaction.objects.filter(order_id=payment['order_id']).exists()

    def test_form_encoded_body(self, student_client, batch):
        response = student_client.post(self.url, {'batch': str(batch.pk), 'amount': '250.00'})
        assert response.status_code == 201

    @pytest.mark.parametrize('amount', ['0', '-1', 'abc'])
    def test_invalid_amount(self, student_client, batch, amount):
        response = post_json(student_client, self.url, {'batch': str(batch.pk), 'amount': amount})
        assert response.status_code == 400
        assert response.json()['error'] == 'VALIDATION_ERROR'

    def test_over_balance(self, student_client, batch):
        response = post_json(student_client, self.url, {'batch': str(batch.pk), 'amount': '5000.01'})
        assert response.status_code == 400
        assert response.json()['error'] == 'AMOUNT_EXCEEDS_REMAINING_BALANCE'

    def test_capacity_exceeded(self, student_client, make_batch):
        batch = make_batch(name='full', capacity=0)
        response = post_json(student_client, self.url, {'batch': str(batch.pk), 'amount': '100.00'})
        assert response.status_code == 409
        assert response.json()['error'] == 'CAPACITY_EXCEEDED'

    def test_cannot_pay_for_another_student(self, student_client, batch, other_student):
        response = post_json(student_client, self.url, {
            'batch': str(batch.pk), 'student': str(other_student.pk), 'amount': '100.00'
        })
        assert response.status_code == 403
        assert not PaymentAccount.objects.exists()

    def test_finance_pays_on_behalf(self, finance_client, batch, student):
        response = post_json(finance_client, self.url, {
            'batch': str(batch.pk), 'student': str(student.pk), 'amount': '100.00'
        })
        assert response.status_code == 201
        assert PaymentAccount.objects.filter(student=student).exists()

    def test_user_without_student_record(self, finance_client, batch):
        response = post_json(finance_client, self.url, {'batch': str(batch.pk), 'amount': '100.00'})
        assert response.status_code == 400

    def test_malformed_json(self, student_client):
        response = student_client.post(self.url, data='{not json', content_type='application/json')
        assert response.status_code == 400


class TestPayHereNotify:
    @property
    def url(self):
        return reverse('payments:payhere_notify')

    @pytest.fixture
    def order_id(self, student_client, batch):
        response = post_json(
            student_client, reverse('payments:payhere_initiate'),
            {'batch': str(batch.pk), 'amount': '1000.00'}
        )
        student_client.logout()
        return response.json()['payment']['order_id']

    def notify(self, client, order_id, amount='1034.12', status_code='2', md5sig=None):
        if md5sig is None:
            md5sig = md5_upper(
                f"{MERCHANT_ID}{order_id}{amount}LKR{status_code}{md5_upper(MERCHANT_SECRET)}"
            )
        return client.post(self.url, {
            'merchant_id': MERCHANT_ID,
            'order_id': order_id,
            'payment_id': '320025071234',
            'payhere_amount': amount,
            'payhere_currency': 'LKR',
            'status_code': status_code,
            'md5sig': md5sig,
        })

    def test_completion_without_session(self, client, order_id):
        response = self.notify(client, order_id)

        assert response.status_code == 200
        assert response.json()['outcome'] == 'completed'
        assert PaymentTransaction.objects.get(order_id=order_id).status == 'completed'

    def test_duplicate(self, client, order_id):
        self.notify(client, order_id)
        response = self.notify(client, order_id)
        assert response.status_code == 200
        assert response.json()['outcome'] == 'duplicate'

    def test_failed(self, client, order_id):
        response = self.notify(client, order_id, status_code='-2')
        assert response.status_code == 200
        assert response.json()['outcome'] == 'failed'

    def test_mismatch_acknowledged(self, client, order_id):
        response = self.notify(client, order_id, amount='1034.13')
        assert response.status_code == 200
        assert response.json()['error'] == 'AMOUNT_MISMATCH'
        assert PaymentTransaction.objects.get(order_id=order_id).status == 'pending'

    def test_unknown_order(self, client):
        response = self.notify(client, 'ORDER_20260101000000_000000000000')
        assert response.status_code == 404

    def test_bad_signature(self, client, order_id):
        response = self.notify(client, order_id, md5sig='F' * 32)
        assert response.status_code == 403

    @pytest.mark.parametrize('body', ['{not json', '[1, 2]'])
    def test_unparseable_body(self, client, order_id, body):
        """A body with no resolvable order is not acknowledged."""
        response = client.post(self.url, data=body, content_type='application/json')

        assert response.status_code == 400
        assert response.json()['error'] == 'VALIDATION_ERROR'
        assert PaymentTransaction.objects.get(order_id=order_id).status == 'pending'

    def test_get_not_allowed(self, client):
        assert client.get(self.url).status_code == 405


class TestManualPayments:

    def test_submit(self, student_client, batch, pdf_upload):
        response = student_client.post(reverse('payments:manual_payment_submit'), {
            'batch': str(batch.pk), 'amount': '1000.00', 'proof': pdf_upload(),
        })

        assert response.status_code == 201
        body = response.json()
        assert body['transaction']['status'] == 'pending'
        assert body['proof']['file_type'] == 'application/pdf'

    def test_submit_without_file(self, student_client, batch):
        response = student_client.post(reverse('payments:manual_payment_submit'), {
            'batch': str(batch.pk), 'amount': '1000.00',
        })
        assert response.status_code == 400

    def test_submit_bad_type(self, student_client, batch, pdf_upload):
        response = student_client.post(reverse('payments:manual_payment_submit'), {
            'batch': str(batch.pk), 'amount': '1000.00',
            'proof': pdf_upload(name='a.txt', content_type='text/plain'),
        })
        assert response.status_code == 400
        assert not PaymentTransaction.objects.exists()

    @pytest.fixture
    def proof(self, student, batch, student_user, pdf_upload):
        from payments.services import ManualPaymentService
        _, proof = ManualPaymentService.submit_manual_payment(
            student, batch, '1000.00', pdf_upload(), user=student_user
        )
        return proof

    def test_review_requires_privilege(self, student_client, proof):
        response = post_json(student_client, reverse('payments:proof_review', args=[proof.pk]), {'status': 'approved'})
        assert response.status_code == 403
        proof.refresh_from_db()
        assert proof.status == PaymentProof.STATUS_PENDING

    def test_review_approve(self, finance_client, proof):
        response = post_json(
            finance_client, reverse('payments:proof_review', args=[proof.pk]),
            {'status': 'approved', 'notes': 'ok'}
        )

        assert response.status_code == 200
        assert response.json()['transaction']['status'] == 'completed'
        assert response.json()['proof']['reviewed_by'] == 'finance'
        account = PaymentAccount.objects.get()
        assert account.amount_paid == Decimal('1000.00')

    def test_review_conflict(self, finance_client, proof):
        url = reverse('payments:proof_review', args=[proof.pk])
        post_json(finance_client, url, {'status': 'rejected'})
        response = post_json(finance_client, url, {'status': 'approved'})
        assert response.status_code == 409

    def test_review_invalid_status(self, finance_client, proof):
        response = post_json(finance_client, reverse('payments:proof_review', args=[proof.pk]), {'status': 'maybe'})
        assert response.status_code == 400

    def test_resubmit(self, student_client, proof, pdf_upload):
        response = student_client.post(
            reverse('payments:proof_resubmit', args=[proof.transaction_id]),
            {'proof': pdf_upload(name='second.pdf')}
        )
        assert response.status_code == 201
        proof.refresh_from_db()
        assert proof.is_active is False

    def test_resubmit_by_other_user(self, client, other_user, proof, pdf_upload):
        client.force_login(other_user)
        response = client.post(
            reverse('payments:proof_resubmit', args=[proof.transaction_id]),
            {'proof': pdf_upload()}
        )
        assert response.status_code == 403


class TestAccounts:

    def test_student_sees_own_accounts_only(self, client, student_user, account, other_student, batch):
        from payments.services import LedgerStore
        LedgerStore.create_account(other_student, batch)
        client.force_login(student_user)

        response = client.get(reverse('payments:account_list'))

        assert response.status_code == 200
        body = response.json()
        assert body['count'] == 1
        assert body['results'][0]['id'] == str(account.pk)

    def test_finance_sees_all(self, finance_client, account, other_student, batch):
        from payments.services import LedgerStore
        LedgerStore.create_account(other_student, batch)
        response = finance_client.get(reverse('payments:account_list'), {'batch': str(batch.pk)})
        assert response.json()['count'] == 2

    def test_invalid_batch_filter(self, finance_client):
        response = finance_client.get(reverse('payments:account_list'), {'batch': 'not-a-uuid'})
        assert response.status_code == 400

    def test_detail_includes_transactions(self, student_client, account, add_transaction):
        add_transaction(account, '100.00')
        response = student_client.get(reverse('payments:account_detail', args=[account.pk]))
        assert response.status_code == 200
        assert len(response.json()['account']['transactions']) == 1

    def test_detail_forbidden_for_other_student(self, client, other_user, account):
        client.force_login(other_user)
        response = client.get(reverse('payments:account_detail', args=[account.pk]))
        assert response.status_code == 403

    def test_detail_not_found(self, student_client):
        url = reverse('payments:account_detail', args=['00000000-0000-0000-0000-000000000000'])
        assert student_client.get(url).status_code == 404

    def test_delete_by_owner(self, student_client, account, add_transaction):
        add_transaction(account, '100.00', status='completed')
        ReconciliationService.reconcile(account)

        response = student_client.delete(reverse('payments:account_detail', args=[account.pk]))

        assert response.status_code == 200
        assert response.json()['refund_simulated'] is False
        assert not PaymentAccount.objects.exists()

    def test_delete_settled_reports_simulated_refund(self, finance_client, account, add_transaction):
        add_transaction(account, '5000.00', status='completed')
        ReconciliationService.reconcile(account)

        response = finance_client.delete(reverse('payments:account_detail', args=[account.pk]))

        body = response.json()
        assert body['refund_simulated'] is True
        assert body['amount_reversed'] == '5000.00'
        assert 'No funds were returned' in body['message']

    def test_delete_by_other_student(self, client, other_user, account):
        client.force_login(other_user)
        response = client.delete(reverse('payments:account_detail', args=[account.pk]))
        assert response.status_code == 403
        assert PaymentAccount.objects.filter(pk=account.pk).exists()


class TestBatchEndpoints:

    def test_summary(self, student_client, batch):
        response = student_client.get(reverse('payments:batch_summary', args=[batch.pk]))
        assert response.status_code == 200
        summary = response.json()['summary']
        assert summary['no_of_participants'] == 10
        assert summary['revenue_received_total'] == '0.00'
        assert summary['seats_remaining'] == 10

    def test_resync_requires_privilege(self, student_client, batch):
        response = student_client.post(reverse('payments:batch_resync', args=[batch.pk]))
        assert response.status_code == 403

    def test_resync(self, finance_client, batch, account, add_transaction):
        add_transaction(account, '5000.00', status='completed')
        ReconciliationService.reconcile(account)
        BatchRevenueAggregate.objects.filter(batch=batch).update(paid_no_of_participants=4)

        response = finance_client.post(reverse('payments:batch_resync', args=[batch.pk]))

        assert response.status_code == 200
        assert response.json()['summary']['paid_no_of_participants'] == 1

    def test_export(self, finance_client, batch, account, add_transaction):
        add_transaction(account, '100.00', status='completed')
        response = finance_client.get(reverse('payments:batch_export', args=[batch.pk]))

        assert response.status_code == 200
        assert response['Content-Type'].startswith('application/vnd.openxmlformats')
        assert response.content[:2] == b'PK'

    def test_export_requires_privilege(self, student_client, batch):
        assert student_client.get(reverse('payments:batch_export', args=[batch.pk])).status_code == 403


class TestReceipts:

    def test_completed_transaction(self, student_client, account, add_transaction):
        txn = add_transaction(account, '1000.00', status='completed')
        ReconciliationService.reconcile(account)

        response = student_client.get(reverse('payments:transaction_receipt', args=[txn.pk]))

        assert response.status_code == 200
        assert response['Content-Type'] == 'application/pdf'
        assert response.content.startswith(b'%PDF')

    def test_pending_transaction(self, student_client, account, add_transaction):
        txn = add_transaction(account, '1000.00')
        response = student_client.get(reverse('payments:transaction_receipt', args=[txn.pk]))
        assert response.status_code == 400

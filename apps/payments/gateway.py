# payments/gateway.py

"""
PayHere Gateway Integration

Outbound: build the signed checkout payload for an online installment.
Inbound: verify asynchronous payment notifications and drive the
transaction state machine (pending -> completed | failed).

Checkout hash:
    UPPER(MD5(merchant_id + order_id + amount + currency + UPPER(MD5(secret))))
Notification checksum (md5sig):
    UPPER(MD5(merchant_id + order_id + payhere_amount + payhere_currency
              + status_code + UPPER(MD5(secret))))
"""

from collections import namedtuple
import hashlib
import hmac
import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone

from payments.exceptions import (
    AmountMismatch,
    InvalidSignature,
    TransactionNotFound,
)
from payments.fees import GrossAmount, gross_from_net, net_from_gross
from payments.models import PaymentTransaction
from payments.services import LedgerStore, ReconciliationService, prepare_installment
from utils.audit import log_financial_activity

logger = logging.getLogger(__name__)

PAYHERE_SUCCESS = '2'

NotificationResult = namedtuple('NotificationResult', ['outcome', 'transaction', 'message'])


def _md5_upper(value):
    return hashlib.md5(value.encode('utf-8')).hexdigest().upper()


# =============================================================================
# PAYHERE CLIENT
# =============================================================================

class PayHereClient:
    """Merchant credentials and signature helpers"""

    def __init__(self, merchant_id=None, merchant_secret=None, currency=None):
        config = settings.PAYHERE
        self.merchant_id = merchant_id if merchant_id is not None else config.get('MERCHANT_ID', '')
        self.merchant_secret = (
            merchant_secret if merchant_secret is not None else config.get('MERCHANT_SECRET', '')
        )
        self.currency = currency or config.get('CURRENCY', 'LKR')

    def ensure_configured(self):
        if not self.merchant_id or not self.merchant_secret:
            raise ImproperlyConfigured("PAYHERE_MERCHANT_ID and PAYHERE_MERCHANT_SECRET must be set")

    @property
    def hashed_secret(self):
        return _md5_upper(self.merchant_secret)

    def generate_hash(self, order_id, gross, currency=None):
        """Checkout signature for a GrossAmount, formatted with 2 decimals"""
        if not isinstance(gross, GrossAmount):
            raise TypeError(f"generate_hash expects a GrossAmount, got {type(gross).__name__}")
        currency = currency or self.currency
        return _md5_upper(
            f"{self.merchant_id}{order_id}{gross.value:.2f}{currency}{self.hashed_secret}"
        )

    def verify_notification_signature(self, order_id, payhere_amount, payhere_currency, status_code, md5sig):
        """Constant-time check of the md5sig sent with a payment notification"""
        if not md5sig:
            return False
        expected = _md5_upper(
            f"{self.merchant_id}{order_id}{payhere_amount}{payhere_currency}"
            f"{status_code}{self.hashed_secret}"
        )
        return hmac.compare_digest(expected, str(md5sig).strip().upper())


# =============================================================================
# CHECKOUT INITIATION
# =============================================================================

@transaction.atomic
def initiate_online_payment(student, batch, amount, user=None, request=None, client=None):
    """
    Create a pending online transaction and return the signed checkout payload.

    The transaction is persisted before the payload is returned so the
    gateway's notification can always be correlated by order_id.

    Raises:
        PaymentValidationError, CapacityExceeded (first payment only),
        AmountExceedsRemainingBalance, CostSummaryNotFound, RevenueSummaryNotFound
    """
    client = client or PayHereClient()
    client.ensure_configured()
    config = settings.PAYHERE

    account, net = prepare_installment(student, batch, amount, user=user, request=request)
    gross = gross_from_net(net)

    txn = LedgerStore.create_transaction(account, net, PaymentTransaction.METHOD_ONLINE)

    payload = {
        'merchant_id': client.merchant_id,
        'return_url': config.get('RETURN_URL', ''),
        'cancel_url': config.get('CANCEL_URL', ''),
        'notify_url': config.get('NOTIFY_URL', ''),
        'order_id': txn.order_id,
        'items': config.get('ITEM_DESCRIPTION') or str(batch),
        'amount': f"{gross.value:.2f}",
        'currency': client.currency,
        'first_name': student.first_name,
        'last_name': student.last_name,
        'email': student.email or (user.email if user is not None else ''),
        'phone': student.phone or config.get('DEFAULT_PHONE', ''),
        'address': student.address or config.get('DEFAULT_ADDRESS', ''),
        'city': student.city or config.get('DEFAULT_CITY', ''),
        'country': config.get('DEFAULT_COUNTRY', 'Sri Lanka'),
        'custom_1': str(student.pk),
        'hash': client.generate_hash(txn.order_id, gross),
        'checkout_url': config.get('CHECKOUT_URL', ''),
        'net_amount': f"{net.value:.2f}",
    }

    logger.info(f"Initiated online payment {txn.order_id}: net {net}, gross {gross}")
    log_financial_activity(
        action='PAYMENT_INITIATE',
        user=user,
        request=request,
        target_object=txn,
        amount=net.value,
        student=student,
        currency=client.currency,
        additional_data={'gross_amount': str(gross), 'order_id': txn.order_id},
    )
    return payload


# =============================================================================
# NOTIFICATION VERIFIER
# =============================================================================

class WebhookVerifier:
    """
    Applies a gateway notification to the transaction it references.

    Handled outcomes are returned as NotificationResult with outcome one of
    ``completed``, ``failed`` or ``duplicate``. TransactionNotFound,
    InvalidSignature, AmountMismatch and PaymentValidationError are raised
    for the caller to map to HTTP responses.
    """

    FIELDS = (
        'merchant_id', 'order_id', 'payment_id', 'payhere_amount',
        'payhere_currency', 'status_code', 'md5sig', 'custom_1',
    )

    def __init__(self, client=None):
        self.client = client or PayHereClient()
        self.require_signature = settings.PAYHERE.get('REQUIRE_NOTIFY_SIGNATURE', False)

    def process(self, data, request=None):
        notification = {field: str(data.get(field) or '').strip() for field in self.FIELDS}
        order_id = notification['order_id']

        txn = (
            PaymentTransaction.objects.select_related('account', 'account__student')
            .filter(order_id=order_id)
            .first()
            if order_id else None
        )
        if txn is None:
            logger.warning(f"Notification for unknown order {order_id!r}")
            log_financial_activity(
                action='WEBHOOK_REJECT',
                request=request,
                notes=f"Unknown order {order_id!r}",
                additional_data=self._audit_payload(notification),
                risk_level='MEDIUM',
                is_automated=True,
            )
            raise TransactionNotFound(details={'order_id': order_id})

        self._check_signature(txn, notification, request)

        if notification['custom_1'] and notification['custom_1'] != str(txn.account.student_id):
            logger.warning(
                f"Notification {order_id}: custom_1 {notification['custom_1']} does not match "
                f"student {txn.account.student_id}"
            )

        if txn.is_terminal:
            logger.info(f"Duplicate notification for {order_id} ({txn.status})")
            return NotificationResult('duplicate', txn, f"Transaction already {txn.status}")

        if notification['status_code'] != PAYHERE_SUCCESS:
            return self._fail(txn, notification, request)

        return self._complete(txn, notification, request)

    # -------------------------------------------------------------------------
    # STEPS
    # -------------------------------------------------------------------------

    def _check_signature(self, txn, notification, request):
        if not notification['md5sig'] and not self.require_signature:
            return

        valid = self.client.verify_notification_signature(
            order_id=notification['order_id'],
            payhere_amount=notification['payhere_amount'],
            payhere_currency=notification['payhere_currency'],
            status_code=notification['status_code'],
            md5sig=notification['md5sig'],
        )
        if valid:
            return

        logger.warning(f"Invalid notification signature for {txn.order_id}")
        log_financial_activity(
            action='WEBHOOK_REJECT',
            request=request,
            target_object=txn,
            student=txn.account.student,
            notes='Invalid md5sig',
            additional_data=self._audit_payload(notification),
            risk_level='HIGH',
            is_automated=True,
        )
        raise InvalidSignature(details={'order_id': txn.order_id})

    def _fail(self, txn, notification, request):
        if not LedgerStore.update_transaction_status(
            txn,
            PaymentTransaction.STATUS_FAILED,
            payment_id=notification['payment_id'] or None,
        ):
            return NotificationResult('duplicate', txn, f"Transaction already {txn.status}")

        logger.info(f"Payment {txn.order_id} failed at gateway (status {notification['status_code']})")
        log_financial_activity(
            action='PAYMENT_FAIL',
            request=request,
            target_object=txn,
            amount=txn.amount_paid,
            student=txn.account.student,
            notes=f"Gateway status {notification['status_code']}",
            additional_data=self._audit_payload(notification),
            is_automated=True,
        )
        return NotificationResult('failed', txn, 'Payment marked as failed')

    def _complete(self, txn, notification, request):
        reported_net = net_from_gross(GrossAmount(notification['payhere_amount']))
        expected_net = txn.net_amount
        currency_ok = (
            not notification['payhere_currency']
            or notification['payhere_currency'] == self.client.currency
        )

        if reported_net != expected_net or not currency_ok:
            logger.warning(
                f"Amount mismatch for {txn.order_id}: expected net {expected_net}, "
                f"gateway {notification['payhere_amount']} {notification['payhere_currency']} "
                f"-> net {reported_net}"
            )
            log_financial_activity(
                action='PAYMENT_MISMATCH',
                request=request,
                target_object=txn,
                amount=txn.amount_paid,
                student=txn.account.student,
                notes='Gateway amount does not match the recorded transaction; left pending',
                additional_data=self._audit_payload(notification),
                risk_level='HIGH',
                is_automated=True,
            )
            raise AmountMismatch(expected=expected_net, received=reported_net)

        with transaction.atomic():
            if not LedgerStore.update_transaction_status(
                txn,
                PaymentTransaction.STATUS_COMPLETED,
                payment_id=notification['payment_id'] or None,
                paid_at=timezone.now(),
            ):
                return NotificationResult('duplicate', txn, f"Transaction already {txn.status}")

            ReconciliationService.reconcile(txn.account)

        logger.info(f"Payment {txn.order_id} completed ({notification['payment_id']})")
        log_financial_activity(
            action='PAYMENT_RECEIVE',
            request=request,
            target_object=txn,
            amount=txn.amount_paid,
            student=txn.account.student,
            currency=notification['payhere_currency'] or self.client.currency,
            additional_data=self._audit_payload(notification),
            is_automated=True,
        )
        return NotificationResult('completed', txn, 'Payment completed')

    @staticmethod
    def _audit_payload(notification):
        return {key: value for key, value in notification.items() if key != 'md5sig'}

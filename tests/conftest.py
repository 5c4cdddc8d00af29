"""Shared fixtures for the payment ledger tests."""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile

from accounts.models import UserProfile
from courses.models import CourseBatch, CourseCostSummary
from payments.fees import NetAmount
from payments.models import PaymentTransaction
from payments.services import LedgerStore
from students.models import Student

User = get_user_model()

MERCHANT_ID = '1211149'
MERCHANT_SECRET = 'test-merchant-secret'


@pytest.fixture(autouse=True)
def payhere_settings(settings, tmp_path):
    """Deterministic gateway configuration and an isolated media root."""
    settings.PAYHERE = {
        **settings.PAYHERE,
        'MERCHANT_ID': MERCHANT_ID,
        'MERCHANT_SECRET': MERCHANT_SECRET,
        'CURRENCY': 'LKR',
        'FEE_PERCENT': '0.033',
        'FIXED_FEE': '0',
        'REQUIRE_NOTIFY_SIGNATURE': False,
    }
    settings.PAYMENTS = {
        **settings.PAYMENTS,
        'MAX_PROOF_SIZE': 1024 * 1024,
    }
    settings.MEDIA_ROOT = str(tmp_path / 'media')
    return settings


# =============================================================================
# USERS AND STUDENTS
# =============================================================================

@pytest.fixture
def make_user(db):
    def _make_user(username, role='STUDENT', **kwargs):
        user = User.objects.create_user(username=username, password='pass-1234', **kwargs)
        UserProfile.objects.create(user=user, role=role)
        return user
    return _make_user


@pytest.fixture
def student_user(make_user):
    return make_user('nimal', email='nimal@example.com')


@pytest.fixture
def other_user(make_user):
    return make_user('kamala', email='kamala@example.com')


@pytest.fixture
def finance_user(make_user):
    return make_user('finance', role='FINANCE_MANAGER')


@pytest.fixture
def make_student(db):
    def _make_student(first_name, last_name='Perera', user=None):
        return Student.objects.create(
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name.lower()}@example.com",
            phone='0771234567',
            user=user,
        )
    return _make_student


@pytest.fixture
def student(make_student, student_user):
    return make_student('Nimal', user=student_user)


@pytest.fixture
def other_student(make_student, other_user):
    return make_student('Kamala', last_name='Silva', user=other_user)


# =============================================================================
# COURSE BATCHES
# =============================================================================

@pytest.fixture
def make_batch(db):
    def _make_batch(name='2026-A', capacity=10, payable=Decimal('5000.00')):
        batch = CourseBatch.objects.create(
            course_name='Diploma in Software Engineering',
            batch_name=name,
            participant_capacity=capacity,
        )
        if payable is not None:
            CourseCostSummary.objects.create(
                batch=batch,
                total_course_cost=payable * capacity,
                course_fee_per_head=payable,
                rounded_cfph=payable,
            )
        return batch
    return _make_batch


@pytest.fixture
def batch(make_batch):
    return make_batch()


# =============================================================================
# LEDGER HELPERS
# =============================================================================

@pytest.fixture
def account(student, batch):
    return LedgerStore.create_account(student, batch)


@pytest.fixture
def add_transaction():
    """Create a transaction and optionally move it to a terminal status."""
    def _add_transaction(account, amount, status=PaymentTransaction.STATUS_PENDING, method='online'):
        txn = LedgerStore.create_transaction(account, NetAmount(amount), method)
        if status != PaymentTransaction.STATUS_PENDING:
            LedgerStore.update_transaction_status(txn, status)
        return txn
    return _add_transaction


@pytest.fixture
def pdf_upload():
    def _pdf_upload(name='receipt.pdf', content=b'%PDF-1.4 bank slip', content_type='application/pdf'):
        return SimpleUploadedFile(name, content, content_type=content_type)
    return _pdf_upload

# payments/forms.py

from decimal import Decimal
from django import forms

from courses.models import CourseBatch
from payments.models import PaymentProof
from students.models import Student


# =============================================================================
# PAYMENT REQUEST FORMS
# =============================================================================

class InstallmentForm(forms.Form):
    """Net installment toward a batch. ``student`` is only honoured for privileged callers."""

    batch = forms.ModelChoiceField(queryset=CourseBatch.objects.all())
    student = forms.ModelChoiceField(queryset=Student.objects.all(), required=False)
    amount = forms.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal('0.01'),
        error_messages={'min_value': 'Amount must be greater than zero.'}
    )


class ManualPaymentForm(InstallmentForm):
    proof = forms.FileField()


class ProofUploadForm(forms.Form):
    proof = forms.FileField()


class ProofReviewForm(forms.Form):
    status = forms.ChoiceField(choices=PaymentProof.STATUS_CHOICES)
    notes = forms.CharField(required=False, max_length=2000)


def form_error_message(form):
    """First error of a bound form as a flat message"""
    for field, errors in form.errors.items():
        label = field if field != '__all__' else 'request'
        return f"{label}: {errors[0]}"
    return "Invalid request"

# payments/views.py

import json
import logging

from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied, ValidationError
from django.core.paginator import Paginator, EmptyPage, PageNotAnInteger
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST, require_GET

from accounts.permissions import is_privileged, privileged_required
from courses.models import CourseBatch
from payments.exceptions import PaymentLedgerError, PaymentValidationError
from payments.exports import build_batch_ledger_workbook, build_receipt_pdf
from payments.forms import (
    InstallmentForm,
    ManualPaymentForm,
    ProofReviewForm,
    ProofUploadForm,
    form_error_message,
)
from payments.gateway import WebhookVerifier, initiate_online_payment
from payments.models import BatchRevenueAggregate, PaymentAccount, PaymentProof, PaymentTransaction
from payments.services import ManualPaymentService, ReconciliationService
from payments.utils import (
    serialize_account,
    serialize_aggregate,
    serialize_proof,
    serialize_transaction,
)

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def _error_response(exc):
    return JsonResponse(exc.to_dict(), status=exc.http_status)


def _validation_response(message):
    return JsonResponse(
        {"success": False, "error": "VALIDATION_ERROR", "message": message},
        status=400
    )


def _not_found(message):
    return JsonResponse({"success": False, "error": "NOT_FOUND", "message": message}, status=404)


def _forbidden(message="Forbidden: you do not own this record"):
    return JsonResponse({"success": False, "error": "FORBIDDEN", "message": message}, status=403)


def _server_error():
    return JsonResponse(
        {"success": False, "error": "SERVER_ERROR", "message": "Internal server error"},
        status=500
    )


def _request_data(request):
    """Form-encoded or JSON body as a dict-like object"""
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise PaymentValidationError("Invalid JSON data")
        if not isinstance(data, dict):
            raise PaymentValidationError("Invalid JSON data")
        return data
    return request.POST


def _resolve_student(request, form):
    """The payer: any student for privileged callers, otherwise the caller's own record"""
    requested = form.cleaned_data.get('student')
    if requested is not None and is_privileged(request.user):
        return requested

    student = getattr(request.user, 'student', None)
    if student is None:
        raise PaymentValidationError("No student record is linked to this user")
    if requested is not None and requested.pk != student.pk:
        raise PermissionDenied("Cannot pay on behalf of another student")
    return student


def _owns_account(user, account):
    return (
        account.student.user_id == user.pk
        or account.created_by_id == str(user.pk)
    )


def _can_view_account(user, account):
    return is_privileged(user) or _owns_account(user, account)


# =============================================================================
# ONLINE PAYMENTS (PAYHERE)
# =============================================================================

@login_required
@require_POST
def payhere_initiate(request):
    """Create a pending online installment and return the signed checkout payload"""
    try:
        form = InstallmentForm(_request_data(request))
        if not form.is_valid():
            return _validation_response(form_error_message(form))

        student = _resolve_student(request, form)
        payload = initiate_online_payment(
            student=student,
            batch=form.cleaned_data['batch'],
            amount=form.cleaned_data['amount'],
            user=request.user,
            request=request,
        )
        return JsonResponse({"success": True, "payment": payload}, status=201)

    except PaymentLedgerError as e:
        return _error_response(e)
    except PermissionDenied as e:
        return _forbidden(str(e))
    except Exception as e:
        logger.error(f"Error initiating online payment: {e}", exc_info=True)
        return _server_error()


@csrf_exempt
@require_POST
def payhere_notify(request):
    """
    Gateway notification endpoint.

    200 for every outcome the ledger has decided on (completed, failed,
    duplicate, amount mismatch, malformed amount) so the gateway stops
    retrying; 404 for unknown orders, 403 for bad signatures and 400 for a
    body that cannot be parsed at all.
    """
    try:
        data = _request_data(request)
    except PaymentValidationError as e:
        logger.warning(f"Unparseable payment notification: {e.message}")
        return _error_response(e)

    try:
        result = WebhookVerifier().process(data, request=request)
        return JsonResponse({
            "success": True,
            "outcome": result.outcome,
            "order_id": result.transaction.order_id,
            "status": result.transaction.status,
            "message": result.message,
        })

    except PaymentLedgerError as e:
        if e.http_status in (403, 404):
            return _error_response(e)
        logger.info(f"Notification acknowledged with {e.code}: {e.message}")
        return JsonResponse(e.to_dict(), status=200)
    except Exception as e:
        logger.error(f"Error processing payment notification: {e}", exc_info=True)
        return _server_error()


# =============================================================================
# MANUAL PAYMENTS
# =============================================================================

@login_required
@require_POST
def manual_payment_submit(request):
    """Submit an offline installment with its proof file"""
    form = ManualPaymentForm(request.POST, request.FILES)
    if not form.is_valid():
        return _validation_response(form_error_message(form))

    try:
        student = _resolve_student(request, form)
        txn, proof = ManualPaymentService.submit_manual_payment(
            student=student,
            batch=form.cleaned_data['batch'],
            amount=form.cleaned_data['amount'],
            uploaded_file=form.cleaned_data['proof'],
            user=request.user,
            request=request,
        )
        return JsonResponse({
            "success": True,
            "message": "Manual payment submitted for review",
            "transaction": serialize_transaction(txn),
            "proof": serialize_proof(proof),
        }, status=201)

    except PaymentLedgerError as e:
        return _error_response(e)
    except PermissionDenied as e:
        return _forbidden(str(e))
    except Exception as e:
        logger.error(f"Error submitting manual payment: {e}", exc_info=True)
        return _server_error()


@login_required
@require_POST
def proof_resubmit(request, pk):
    """Attach a replacement proof to a pending manual transaction"""
    try:
        txn = PaymentTransaction.objects.select_related('account', 'account__student').get(pk=pk)
    except PaymentTransaction.DoesNotExist:
        return _not_found("Transaction not found")

    if not _can_view_account(request.user, txn.account):
        return _forbidden()

    form = ProofUploadForm(request.POST, request.FILES)
    if not form.is_valid():
        return _validation_response(form_error_message(form))

    try:
        proof = ManualPaymentService.resubmit_proof(
            txn,
            form.cleaned_data['proof'],
            user=request.user,
            request=request,
        )
        return JsonResponse({"success": True, "proof": serialize_proof(proof)}, status=201)

    except PaymentLedgerError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error resubmitting proof for {pk}: {e}", exc_info=True)
        return _server_error()


@login_required
@privileged_required
@require_POST
def proof_review(request, pk):
    """Approve, reject or reset a proof"""
    try:
        proof = PaymentProof.objects.get(pk=pk)
    except PaymentProof.DoesNotExist:
        return _not_found("Proof not found")

    try:
        form = ProofReviewForm(_request_data(request))
        if not form.is_valid():
            return _validation_response(form_error_message(form))

        proof = ManualPaymentService.review_proof(
            proof,
            form.cleaned_data['status'],
            reviewer=request.user,
            notes=form.cleaned_data['notes'],
            request=request,
        )
        return JsonResponse({
            "success": True,
            "message": f"Proof marked as {proof.status}",
            "proof": serialize_proof(proof),
            "transaction": serialize_transaction(proof.transaction),
        })

    except PaymentLedgerError as e:
        return _error_response(e)
    except PermissionDenied as e:
        return _forbidden(str(e))
    except Exception as e:
        logger.error(f"Error reviewing proof {pk}: {e}", exc_info=True)
        return _server_error()


# =============================================================================
# PAYMENT ACCOUNTS
# =============================================================================

@login_required
@require_GET
def account_list(request):
    """Accounts visible to the caller; privileged users see every student's"""
    accounts = PaymentAccount.objects.select_related('student', 'batch').order_by('-created_at')

    if not is_privileged(request.user):
        accounts = accounts.filter(student__user=request.user)

    batch_id = request.GET.get('batch')
    if batch_id:
        try:
            accounts = accounts.filter(batch_id=batch_id)
        except ValidationError:
            return _validation_response("batch: invalid identifier")

    paginator = Paginator(accounts, 50)
    page = request.GET.get('page', 1)
    try:
        page_obj = paginator.page(page)
    except PageNotAnInteger:
        page_obj = paginator.page(1)
    except EmptyPage:
        page_obj = paginator.page(paginator.num_pages)

    return JsonResponse({
        "success": True,
        "count": paginator.count,
        "page": page_obj.number,
        "num_pages": paginator.num_pages,
        "results": [serialize_account(account) for account in page_obj],
    })


@login_required
@require_http_methods(["GET", "DELETE"])
def account_detail(request, pk):
    """Account with its transactions, or its administrative deletion"""
    try:
        account = PaymentAccount.objects.select_related('student', 'batch').get(pk=pk)
    except PaymentAccount.DoesNotExist:
        return _not_found("Payment not found")

    if request.method == 'GET':
        if not _can_view_account(request.user, account):
            return _forbidden()
        return JsonResponse({"success": True, "account": serialize_account(account, include_transactions=True)})

    if not _can_view_account(request.user, account):
        return _forbidden("Forbidden. You can not delete this as you do not own this record.")

    try:
        result = ReconciliationService.delete_account(account, user=request.user, request=request)
        return JsonResponse({
            "success": True,
            "message": result.message,
            "refund_simulated": result.refund_simulated,
            "amount_reversed": str(result.amount_reversed),
        })

    except PaymentLedgerError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error deleting payment account {pk}: {e}", exc_info=True)
        return _server_error()


# =============================================================================
# BATCH REVENUE
# =============================================================================

@login_required
@require_GET
def batch_summary(request, pk):
    try:
        aggregate = BatchRevenueAggregate.objects.select_related('batch').get(batch_id=pk)
    except BatchRevenueAggregate.DoesNotExist:
        return _not_found("Course revenue summary not found for the batch")

    return JsonResponse({"success": True, "summary": serialize_aggregate(aggregate)})


@login_required
@privileged_required
@require_POST
def batch_resync(request, pk):
    """Recompute the batch aggregate from its completed accounts"""
    try:
        batch = CourseBatch.objects.get(pk=pk)
    except CourseBatch.DoesNotExist:
        return _not_found("Batch not found")

    try:
        aggregate = ReconciliationService.resync_batch(batch, user=request.user, request=request)
        return JsonResponse({"success": True, "summary": serialize_aggregate(aggregate)})

    except PaymentLedgerError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error resyncing batch {pk}: {e}", exc_info=True)
        return _server_error()


# =============================================================================
# EXPORTS
# =============================================================================

@login_required
@privileged_required
@require_GET
def batch_export(request, pk):
    """Excel ledger for one batch"""
    try:
        batch = CourseBatch.objects.get(pk=pk)
    except CourseBatch.DoesNotExist:
        return _not_found("Batch not found")

    content = build_batch_ledger_workbook(batch)
    response = HttpResponse(
        content,
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    filename = f"payments_{batch.course_name}_{batch.batch_name}.xlsx".replace(' ', '_')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


@login_required
@require_GET
def transaction_receipt(request, pk):
    """PDF receipt for a completed transaction"""
    try:
        txn = PaymentTransaction.objects.select_related(
            'account', 'account__student', 'account__batch'
        ).get(pk=pk)
    except PaymentTransaction.DoesNotExist:
        return _not_found("Transaction not found")

    if not _can_view_account(request.user, txn.account):
        return _forbidden()

    if txn.status != PaymentTransaction.STATUS_COMPLETED:
        return _validation_response("Receipts are only available for completed transactions")

    response = HttpResponse(build_receipt_pdf(txn), content_type='application/pdf')
    response['Content-Disposition'] = f'inline; filename="receipt_{txn.order_id}.pdf"'
    return response

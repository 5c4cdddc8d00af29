# payments/exceptions.py

"""
Payment Ledger Exceptions

Every ledger error carries a machine-readable ``code`` and the HTTP status
the views answer with, so a view can turn any of them into a JSON response
without knowing the concrete class.
"""


class PaymentLedgerError(Exception):
    """Base exception for all payment ledger errors"""

    code = "PAYMENT_ERROR"
    http_status = 400
    default_message = "Payment error"

    def __init__(self, message=None, code=None, details=None):
        self.message = message or self.default_message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self):
        """Convert exception to dictionary for API responses."""
        data = {
            'success': False,
            'error': self.code,
            'message': self.message,
        }
        if self.details:
            data['details'] = self.details
        return data


# =============================================================================
# REQUEST VALIDATION
# =============================================================================

class PaymentValidationError(PaymentLedgerError):
    """Malformed request, e.g. a negative or non-numeric amount"""
    code = "VALIDATION_ERROR"
    default_message = "Invalid payment request"


# =============================================================================
# BUSINESS RULE REJECTIONS
# =============================================================================

class CapacityExceeded(PaymentLedgerError):
    """The batch has no seat left for a first-time payer"""
    code = "CAPACITY_EXCEEDED"
    http_status = 409
    default_message = "Batch capacity has been reached"


class AmountExceedsRemainingBalance(PaymentLedgerError):
    code = "AMOUNT_EXCEEDS_REMAINING_BALANCE"
    default_message = "Total payment exceeds full amount payable"

    def __init__(self, message=None, requested=None, remaining=None):
        super().__init__(
            message=message,
            details={
                'requested': str(requested) if requested is not None else None,
                'remaining': str(remaining) if remaining is not None else None,
            }
        )
        self.requested = requested
        self.remaining = remaining


class DuplicateAccount(PaymentLedgerError):
    """
    A payment account for this (student, batch) pair already exists.

    Raised by the insert that lost a first-payment race; callers that open
    accounts on demand recover by re-fetching the winning row.
    """
    code = "DUPLICATE_ACCOUNT"
    http_status = 409
    default_message = "Student already has a payment record for this course and batch"


class TransactionAlreadyFinal(PaymentLedgerError):
    """The transaction is completed or failed and cannot move again"""
    code = "TRANSACTION_ALREADY_FINAL"
    http_status = 409
    default_message = "Transaction is already completed or failed"


# =============================================================================
# GATEWAY NOTIFICATION ERRORS
# =============================================================================

class AmountMismatch(PaymentLedgerError):
    """
    Gateway-reported amount does not convert to the recorded net amount.
    The transaction stays pending for investigation.
    """
    code = "AMOUNT_MISMATCH"
    # Acknowledged so the gateway stops retrying an order already decided on
    http_status = 200
    default_message = "Reported amount does not match the recorded transaction"

    def __init__(self, message=None, expected=None, received=None):
        super().__init__(
            message=message,
            details={
                'expected_net': str(expected) if expected is not None else None,
                'received_net': str(received) if received is not None else None,
            }
        )
        self.expected = expected
        self.received = received


class TransactionNotFound(PaymentLedgerError):
    code = "TRANSACTION_NOT_FOUND"
    # Non-200 so the gateway retries a notification we could not correlate
    http_status = 404
    default_message = "Transaction not found"


class InvalidSignature(PaymentLedgerError):
    code = "INVALID_SIGNATURE"
    http_status = 403
    default_message = "Notification signature verification failed"


# =============================================================================
# COLLABORATOR LOOKUPS
# =============================================================================

class CostSummaryNotFound(PaymentLedgerError):
    code = "COST_SUMMARY_NOT_FOUND"
    default_message = "Course cost summary not found"


class RevenueSummaryNotFound(PaymentLedgerError):
    code = "REVENUE_SUMMARY_NOT_FOUND"
    default_message = "Course revenue summary not found for the batch"


# =============================================================================
# MANUAL PROOFS
# =============================================================================

class ProofInactive(PaymentLedgerError):
    """The proof was superseded by a resubmission and can no longer be reviewed"""
    code = "PROOF_INACTIVE"
    http_status = 409
    default_message = "This proof has been replaced by a newer submission"

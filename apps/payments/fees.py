# payments/fees.py

"""
Gateway fee conversion.

The ledger always records NET amounts (what the institution must receive).
The GROSS amount (what the payer is charged, inclusive of gateway fees)
exists only on the outbound checkout request and the inbound notification.
The two are separate types so they can never be compared or summed by
accident.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_DOWN, ROUND_HALF_UP
import logging

from django.conf import settings

from payments.exceptions import PaymentValidationError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')


def to_decimal(value, field='amount'):
    """Parse a user or gateway supplied amount, raising PaymentValidationError"""
    if isinstance(value, (NetAmount, GrossAmount)):
        raise TypeError(f"{field} is already a {type(value).__name__}; use .value")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(str(value).strip()) if isinstance(value, str) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise PaymentValidationError(
            f"Invalid {field}: {value!r}",
            details={'field': field}
        )
    if not result.is_finite():
        raise PaymentValidationError(f"Invalid {field}: {value!r}", details={'field': field})
    return result


def quantize_money(value):
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


# =============================================================================
# AMOUNT TYPES
# =============================================================================

@dataclass(frozen=True, order=True)
class _Amount:
    value: Decimal

    def __post_init__(self):
        amount = quantize_money(to_decimal(self.value, field=self._label))
        if amount < 0:
            raise PaymentValidationError(
                f"{self._label} cannot be negative",
                details={'field': self._label, 'value': str(amount)}
            )
        # -0.00 is stored as 0.00
        object.__setattr__(self, 'value', amount.copy_abs())

    def __add__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self.value + other.value)

    def __sub__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return type(self)(self.value - other.value)

    def __str__(self):
        return f"{self.value:.2f}"

    def __bool__(self):
        return self.value != 0

    @classmethod
    def zero(cls):
        return cls(Decimal('0.00'))


class NetAmount(_Amount):
    """Amount the institution must receive. The only amount the ledger stores."""
    _label = 'net amount'


class GrossAmount(_Amount):
    """Amount charged to the payer, inclusive of gateway fees."""
    _label = 'gross amount'


# =============================================================================
# CONFIGURATION
# =============================================================================

def get_fee_percent():
    """Gateway percentage fee as a fraction, e.g. Decimal('0.033')"""
    return to_decimal(settings.PAYHERE.get('FEE_PERCENT', '0.033'), field='fee percent')


def get_fixed_fee():
    return to_decimal(settings.PAYHERE.get('FIXED_FEE', '0'), field='fixed fee')


def _validate_rates(fee_percent, fixed_fee):
    fee_percent = to_decimal(fee_percent, field='fee percent')
    fixed_fee = to_decimal(fixed_fee, field='fixed fee')

    if fee_percent < 0 or fee_percent >= 1:
        raise PaymentValidationError(
            "Fee percent must be in the range [0, 1)",
            details={'fee_percent': str(fee_percent)}
        )
    if fixed_fee < 0:
        raise PaymentValidationError(
            "Fixed fee cannot be negative",
            details={'fixed_fee': str(fixed_fee)}
        )
    return fee_percent, fixed_fee


# =============================================================================
# CONVERSIONS
# =============================================================================

def gross_from_net(net, fee_percent=None, fixed_fee=None):
    """
    Amount to charge the payer so that ``net`` reaches the institution.

    gross = (net + fixed_fee) / (1 - fee_percent), rounded DOWN to 2dp so
    the payer is never charged more than the exact grossed-up amount.

    Example:
        >>> gross_from_net(NetAmount('1000.00'), Decimal('0.033'))
        GrossAmount(value=Decimal('1034.12'))
    """
    if not isinstance(net, NetAmount):
        raise TypeError(f"gross_from_net expects a NetAmount, got {type(net).__name__}")

    fee_percent, fixed_fee = _validate_rates(
        get_fee_percent() if fee_percent is None else fee_percent,
        get_fixed_fee() if fixed_fee is None else fixed_fee,
    )
    gross = (net.value + fixed_fee) / (Decimal('1') - fee_percent)
    return GrossAmount(gross.quantize(TWO_PLACES, rounding=ROUND_DOWN))


def net_from_gross(gross, fee_percent=None, fixed_fee=None):
    """
    Amount the institution receives when the payer is charged ``gross``.

    net = gross * (1 - fee_percent) - fixed_fee, rounded UP (ceiling) to 2dp.

    Paired with the rounded-down gross of gross_from_net, the unrounded net
    lies in (n - 0.01, n] for a recorded net n, so the ceiling recovers n
    exactly. A gross amount that does not cover the fixed fee yields a
    validation error.
    """
    if not isinstance(gross, GrossAmount):
        raise TypeError(f"net_from_gross expects a GrossAmount, got {type(gross).__name__}")

    fee_percent, fixed_fee = _validate_rates(
        get_fee_percent() if fee_percent is None else fee_percent,
        get_fixed_fee() if fixed_fee is None else fixed_fee,
    )
    net = gross.value * (Decimal('1') - fee_percent) - fixed_fee
    return NetAmount(net.quantize(TWO_PLACES, rounding=ROUND_CEILING))

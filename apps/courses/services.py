# courses/services.py

import logging
from decimal import Decimal

from courses.models import CourseCostSummary

logger = logging.getLogger(__name__)


def fetch_full_amount_payable(batch):
    """
    Return the per-participant amount payable for a batch, taken from its
    most recent cost summary.

    Raises:
        CostSummaryNotFound: the batch has not been costed yet
    """
    from payments.exceptions import CostSummaryNotFound

    summary = (
        CourseCostSummary.objects.filter(batch=batch)
        .order_by('-created_at')
        .first()
    )
    if summary is None:
        logger.warning(f"No cost summary for batch {batch.pk}")
        raise CostSummaryNotFound(
            "Course cost summary not found for this batch",
            details={'batch_id': str(batch.pk)}
        )

    return Decimal(summary.rounded_cfph).quantize(Decimal('0.01'))

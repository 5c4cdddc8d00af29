# payments/signals.py

"""
Payment Ledger Signal Handlers

Auto-processing for:
- Revenue aggregate provisioning when a course batch is created
- Aggregate resync when a batch's participant capacity changes
"""

from django.db.models.signals import post_save
from django.dispatch import receiver
import logging

from payments.models import BatchRevenueAggregate

logger = logging.getLogger(__name__)


# =============================================================================
# COURSE BATCH SIGNALS
# =============================================================================

@receiver(post_save, sender='courses.CourseBatch')
def course_batch_post_save(sender, instance, created, **kwargs):
    """Keep the batch's revenue aggregate in step with its capacity"""
    if kwargs.get('raw'):
        return

    aggregate, aggregate_created = BatchRevenueAggregate.objects.get_or_create(
        batch=instance,
        defaults={'no_of_participants': instance.participant_capacity},
    )
    if aggregate_created:
        logger.info(f"Provisioned revenue aggregate for batch {instance.pk}")
        return

    if aggregate.no_of_participants != instance.participant_capacity:
        from payments.services import ReconciliationService

        logger.info(
            f"Capacity of batch {instance.pk} changed "
            f"{aggregate.no_of_participants} -> {instance.participant_capacity}"
        )
        aggregate.no_of_participants = instance.participant_capacity
        aggregate.save(update_fields=['no_of_participants'])

        ReconciliationService.resync_batch(instance)

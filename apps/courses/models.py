# courses/models.py

from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from utils.models import BaseModel

import logging

logger = logging.getLogger(__name__)


# =============================================================================
# COURSE BATCH
# =============================================================================

class CourseBatch(BaseModel):
    """A scheduled intake of a course with a fixed number of seats"""

    course_name = models.CharField("Course Name", max_length=200)
    batch_name = models.CharField("Batch Name", max_length=100)
    participant_capacity = models.PositiveIntegerField(
        "Participant Capacity",
        default=0,
        help_text="Number of seats available to paying participants"
    )
    start_date = models.DateField("Start Date", null=True, blank=True)
    end_date = models.DateField("End Date", null=True, blank=True)

    class Meta:
        db_table = 'coursebatch'
        ordering = ['course_name', 'batch_name']
        verbose_name = "Course Batch"
        verbose_name_plural = "Course Batches"
        unique_together = [['course_name', 'batch_name']]

    def __str__(self):
        return f"{self.course_name} - {self.batch_name}"


# =============================================================================
# COURSE COST SUMMARY
# =============================================================================

class CourseCostSummary(BaseModel):
    """
    Costing outcome for a batch. The latest summary defines the fee each
    participant pays; earlier rows are kept as history.
    """

    batch = models.ForeignKey(
        CourseBatch,
        on_delete=models.CASCADE,
        related_name='cost_summaries'
    )
    total_course_cost = models.DecimalField(
        "Total Course Cost",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    course_fee_per_head = models.DecimalField(
        "Course Fee Per Head",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    rounded_cfph = models.DecimalField(
        "Rounded Course Fee Per Head",
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text="Amount each participant must pay"
    )
    prepared_by = models.CharField("Prepared By", max_length=255, blank=True)

    class Meta:
        db_table = 'course_cost_summary'
        ordering = ['-created_at']
        verbose_name = "Course Cost Summary"
        verbose_name_plural = "Course Cost Summaries"

    def __str__(self):
        return f"{self.batch} - {self.rounded_cfph}"

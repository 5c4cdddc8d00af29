# students/models.py

from django.db import models
from django.conf import settings
from utils.models import BaseModel

import logging

logger = logging.getLogger(__name__)


# =============================================================================
# STUDENT MODEL
# =============================================================================

class Student(BaseModel):
    """Payer identity for the payment ledger"""

    registration_number = models.CharField(
        "Registration Number",
        max_length=20,
        unique=True,
        blank=True,
        db_index=True
    )

    # Personal information
    first_name = models.CharField("First Name", max_length=50)
    last_name = models.CharField("Last Name", max_length=50)
    email = models.EmailField("Email", blank=True)
    phone = models.CharField("Phone", max_length=20, blank=True)
    address = models.CharField("Address", max_length=255, blank=True)
    city = models.CharField("City", max_length=100, blank=True)

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='student',
        help_text="Login account of the student, if any"
    )

    class Meta:
        ordering = ['registration_number']
        verbose_name = "Student"
        verbose_name_plural = "Students"
        indexes = [
            models.Index(fields=['first_name', 'last_name'], name='students_st_first_n_4c1a7e_idx'),
        ]

    def __str__(self):
        return f"{self.get_full_name()} ({self.registration_number})"

    def get_full_name(self):
        """Get student's full name"""
        return f"{self.first_name} {self.last_name}".strip()

    def save(self, *args, **kwargs):
        """Override save to auto-generate registration number"""
        if not self.registration_number:
            from students.utils import generate_registration_number
            self.registration_number = generate_registration_number()

        super().save(*args, **kwargs)

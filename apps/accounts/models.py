# accounts/models.py

from django.contrib.auth.models import User
from django.db import models
import logging

from utils.models import BaseModel

logger = logging.getLogger(__name__)


# =============================================================================
# USER PROFILE
# =============================================================================

class UserProfile(BaseModel):
    """Role assignment for an authenticated principal"""

    USER_ROLES = [
        ('SUPER_ADMIN', 'Super Administrator'),
        ('FINANCE_MANAGER', 'Finance Manager'),
        ('COORDINATOR', 'Course Coordinator'),
        ('LECTURER', 'Lecturer'),
        ('STUDENT', 'Student'),
    ]

    # Roles allowed to review proofs and see every student's ledger
    FINANCE_ROLES = ['SUPER_ADMIN', 'FINANCE_MANAGER']

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile'
    )
    role = models.CharField(
        "Role",
        max_length=30,
        choices=USER_ROLES,
        default='STUDENT'
    )
    can_edit_financial_data = models.BooleanField(
        "Can Edit Financial Data",
        default=False,
        help_text="Grants finance privileges regardless of role"
    )

    class Meta:
        db_table = 'user_profiles'
        verbose_name = 'User Profile'
        verbose_name_plural = 'User Profiles'
        ordering = ['user__username']

    def __str__(self):
        return f"{self.user.username} - {self.get_role_display()}"

    def can_manage_finances(self):
        """Check if user can approve proofs and administer payment records"""
        return (
            self.role in self.FINANCE_ROLES
            or self.user.is_superuser
            or self.can_edit_financial_data
        )

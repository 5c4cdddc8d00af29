# students/utils.py

from django.utils import timezone


# =============================================================================
# REGISTRATION NUMBER GENERATION
# =============================================================================

def generate_registration_number(year=None):
    """
    Generate the next registration number for the given year.

    Format: STU/<yy>/<sequence>, e.g. "STU/26/0007". The sequence restarts
    every year.
    """
    from students.models import Student

    year = year or timezone.now().year
    prefix = f"STU/{year % 100:02d}/"

    last = (
        Student.objects.filter(registration_number__startswith=prefix)
        .order_by('-registration_number')
        .values_list('registration_number', flat=True)
        .first()
    )

    next_sequence = 1
    if last:
        try:
            next_sequence = int(last.rsplit('/', 1)[-1]) + 1
        except ValueError:
            next_sequence = Student.objects.filter(registration_number__startswith=prefix).count() + 1

    return f"{prefix}{next_sequence:04d}"

# courses/admin.py

from django.contrib import admin
from .models import CourseBatch, CourseCostSummary


class CourseCostSummaryInline(admin.TabularInline):
    model = CourseCostSummary
    extra = 0
    fields = ('total_course_cost', 'course_fee_per_head', 'rounded_cfph', 'prepared_by')


@admin.register(CourseBatch)
class CourseBatchAdmin(admin.ModelAdmin):
    list_display = ('course_name', 'batch_name', 'participant_capacity', 'start_date')
    search_fields = ('course_name', 'batch_name')
    inlines = [CourseCostSummaryInline]

# students/admin.py

from django.contrib import admin
from .models import Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('registration_number', 'first_name', 'last_name', 'email', 'phone')
    search_fields = ('registration_number', 'first_name', 'last_name', 'email')
    readonly_fields = ('registration_number', 'created_at', 'updated_at')

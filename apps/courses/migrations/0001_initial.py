from decimal import Decimal
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='CourseBatch',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(db_index=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(db_index=True, verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('created_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Created From IP')),
                ('updated_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Updated From IP')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('course_name', models.CharField(max_length=200, verbose_name='Course Name')),
                ('batch_name', models.CharField(max_length=100, verbose_name='Batch Name')),
                ('participant_capacity', models.PositiveIntegerField(default=0, help_text='Number of seats available to paying participants', verbose_name='Participant Capacity')),
                ('start_date', models.DateField(blank=True, null=True, verbose_name='Start Date')),
                ('end_date', models.DateField(blank=True, null=True, verbose_name='End Date')),
            ],
            options={
                'verbose_name': 'Course Batch',
                'verbose_name_plural': 'Course Batches',
                'db_table': 'coursebatch',
                'ordering': ['course_name', 'batch_name'],
                'unique_together': {('course_name', 'batch_name')},
            },
        ),
        migrations.CreateModel(
            name='CourseCostSummary',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(db_index=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(db_index=True, verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('created_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Created From IP')),
                ('updated_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Updated From IP')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('total_course_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='Total Course Cost')),
                ('course_fee_per_head', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='Course Fee Per Head')),
                ('rounded_cfph', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Amount each participant must pay', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='Rounded Course Fee Per Head')),
                ('prepared_by', models.CharField(blank=True, max_length=255, verbose_name='Prepared By')),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cost_summaries', to='courses.coursebatch')),
            ],
            options={
                'verbose_name': 'Course Cost Summary',
                'verbose_name_plural': 'Course Cost Summaries',
                'db_table': 'course_cost_summary',
                'ordering': ['-created_at'],
            },
        ),
    ]

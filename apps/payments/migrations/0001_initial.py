from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import payments.models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('courses', '0001_initial'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PaymentAccount',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(db_index=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(db_index=True, verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('created_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Created From IP')),
                ('updated_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Updated From IP')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('full_amount_payable', models.DecimalField(decimal_places=2, help_text='Fixed at account creation from the batch cost summary', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='Full Amount Payable')),
                ('amount_paid', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Sum of completed transactions (net)', max_digits=12, verbose_name='Amount Paid')),
                ('payment_completed', models.BooleanField(db_index=True, default=False, verbose_name='Payment Completed')),
                ('batch', models.ForeignKey(db_column='courseBatch_id', on_delete=django.db.models.deletion.CASCADE, related_name='payment_accounts', to='courses.coursebatch', verbose_name='Course Batch')),
                ('student', models.ForeignKey(db_column='student_id', on_delete=django.db.models.deletion.CASCADE, related_name='payment_accounts', to='students.student', verbose_name='Student')),
            ],
            options={
                'verbose_name': 'Payment Account',
                'verbose_name_plural': 'Payment Accounts',
                'db_table': 'student_payments',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['batch', 'payment_completed'], name='student_pay_courseB_9a2d1f_idx')],
                'constraints': [models.UniqueConstraint(fields=('student', 'batch'), name='unique_student_courseBatch')],
            },
        ),
        migrations.CreateModel(
            name='PaymentTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(db_index=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(db_index=True, verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('created_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Created From IP')),
                ('updated_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Updated From IP')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('order_id', models.CharField(help_text='System-generated gateway correlation key', max_length=100, unique=True, verbose_name='Order ID')),
                ('amount_paid', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))], verbose_name='Amount (Net)')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed')], db_index=True, default='pending', max_length=10, verbose_name='Status')),
                ('payment_id', models.CharField(blank=True, max_length=255, null=True, verbose_name='Gateway Payment ID')),
                ('payment_method', models.CharField(choices=[('manual', 'Manual'), ('online', 'Online')], default='manual', max_length=10, verbose_name='Payment Method')),
                ('payment_date', models.DateTimeField(blank=True, null=True, verbose_name='Payment Date')),
                ('account', models.ForeignKey(db_column='student_payment_id', on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='payments.paymentaccount', verbose_name='Payment Account')),
            ],
            options={
                'verbose_name': 'Payment Transaction',
                'verbose_name_plural': 'Payment Transactions',
                'db_table': 'student_payment_transactions',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['account', 'status'], name='student_pay_student_4e7b0c_idx')],
            },
        ),
        migrations.CreateModel(
            name='PaymentProof',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(db_index=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(db_index=True, verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('created_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Created From IP')),
                ('updated_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Updated From IP')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('file', models.FileField(db_column='file_path', max_length=500, upload_to=payments.models.proof_upload_to, verbose_name='File')),
                ('file_name', models.CharField(blank=True, max_length=255, verbose_name='File Name')),
                ('file_type', models.CharField(blank=True, max_length=50, verbose_name='File Type')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], db_index=True, default='pending', max_length=10, verbose_name='Status')),
                ('is_active', models.BooleanField(default=True, verbose_name='Is Active')),
                ('reviewed_by_id', models.CharField(blank=True, max_length=50, null=True, verbose_name='Reviewed By ID')),
                ('reviewed_at', models.DateTimeField(blank=True, null=True, verbose_name='Reviewed At')),
                ('review_notes', models.TextField(blank=True, verbose_name='Review Notes')),
                ('transaction', models.ForeignKey(db_column='transaction_id', on_delete=django.db.models.deletion.CASCADE, related_name='proofs', to='payments.paymenttransaction', verbose_name='Transaction')),
                ('uploaded_by', models.ForeignKey(db_column='uploaded_by', on_delete=django.db.models.deletion.PROTECT, related_name='payment_proofs', to=settings.AUTH_USER_MODEL, verbose_name='Uploaded By')),
            ],
            options={
                'verbose_name': 'Payment Proof',
                'verbose_name_plural': 'Payment Proofs',
                'db_table': 'student_payment_proofs',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='BatchRevenueAggregate',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(db_index=True, verbose_name='Created At')),
                ('updated_at', models.DateTimeField(db_index=True, verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of user who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('created_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Created From IP')),
                ('updated_from_ip', models.GenericIPAddressField(blank=True, null=True, verbose_name='Updated From IP')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('no_of_participants', models.PositiveIntegerField(default=0, verbose_name='Participant Capacity')),
                ('paid_no_of_participants', models.PositiveIntegerField(default=0, verbose_name='Paid Participants')),
                ('revenue_received_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, verbose_name='Revenue Received')),
                ('all_fees_collected_status', models.BooleanField(default=False, verbose_name='Capacity Full')),
                ('batch', models.OneToOneField(db_column='courseBatch_id', on_delete=django.db.models.deletion.CASCADE, related_name='revenue_aggregate', to='courses.coursebatch', verbose_name='Course Batch')),
            ],
            options={
                'verbose_name': 'Batch Revenue Aggregate',
                'verbose_name_plural': 'Batch Revenue Aggregates',
                'db_table': 'course_revenue_summary',
            },
        ),
    ]

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
    ]

    operations = [
        migrations.CreateModel(
            name='FinancialAuditLog',
            fields=[
                ('id', models.AutoField(primary_key=True, serialize=False)),
                ('timestamp', models.DateTimeField(db_index=True)),
                ('action', models.CharField(choices=[('ACCOUNT_CREATE', 'Payment Account Opened'), ('ACCOUNT_DELETE', 'Payment Account Deleted'), ('PAYMENT_INITIATE', 'Online Payment Initiated'), ('PAYMENT_RECEIVE', 'Payment Received'), ('PAYMENT_FAIL', 'Payment Failed'), ('PAYMENT_MISMATCH', 'Gateway Amount Mismatch'), ('PAYMENT_REFUND_SIMULATED', 'Refund Simulated'), ('PROOF_SUBMIT', 'Payment Proof Submitted'), ('PROOF_REVIEW', 'Payment Proof Reviewed'), ('RECONCILIATION', 'Account Reconciliation'), ('BATCH_RESYNC', 'Batch Revenue Resync'), ('WEBHOOK_REJECT', 'Gateway Notification Rejected')], db_index=True, max_length=30)),
                ('user_id', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('user_name', models.CharField(blank=True, max_length=200, null=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('object_id', models.CharField(blank=True, max_length=100, null=True)),
                ('object_description', models.CharField(blank=True, max_length=500, null=True)),
                ('amount_involved', models.DecimalField(blank=True, decimal_places=2, help_text='Monetary amount involved in the action', max_digits=15, null=True)),
                ('currency', models.CharField(blank=True, max_length=3, null=True)),
                ('student_id', models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ('student_name', models.CharField(blank=True, max_length=200, null=True)),
                ('old_values', models.JSONField(blank=True, help_text='Values before change', null=True)),
                ('new_values', models.JSONField(blank=True, help_text='Values after change', null=True)),
                ('risk_level', models.CharField(choices=[('LOW', 'Low Risk'), ('MEDIUM', 'Medium Risk'), ('HIGH', 'High Risk'), ('CRITICAL', 'Critical Risk')], db_index=True, default='LOW', max_length=10)),
                ('additional_data', models.JSONField(blank=True, default=dict)),
                ('notes', models.TextField(blank=True, null=True)),
                ('is_automated', models.BooleanField(default=False, help_text='Whether this action was performed by the system (e.g. a gateway callback)')),
                ('content_type', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to='contenttypes.contenttype')),
            ],
            options={
                'verbose_name': 'Financial Audit Log',
                'verbose_name_plural': 'Financial Audit Logs',
                'ordering': ['-timestamp'],
                'indexes': [models.Index(fields=['timestamp', 'action'], name='utils_finan_timesta_6f1c2e_idx'), models.Index(fields=['user_id', 'timestamp'], name='utils_finan_user_id_3b9d4a_idx'), models.Index(fields=['student_id', 'timestamp'], name='utils_finan_student_8e2f7b_idx'), models.Index(fields=['risk_level', 'timestamp'], name='utils_finan_risk_le_5a0c91_idx')],
            },
        ),
    ]

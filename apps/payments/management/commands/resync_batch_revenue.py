# payments/management/commands/resync_batch_revenue.py

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from courses.models import CourseBatch
from payments.exceptions import PaymentLedgerError
from payments.models import BatchRevenueAggregate, PaymentAccount
from payments.services import ReconciliationService


class Command(BaseCommand):
    help = 'Recompute batch revenue aggregates from completed payment accounts'

    def add_arguments(self, parser):
        parser.add_argument('--batch', dest='batch_id', help='UUID of the course batch to resync')
        parser.add_argument('--all', action='store_true', help='Resync every batch')
        parser.add_argument(
            '--reconcile-accounts',
            action='store_true',
            help='Reconcile every account of the batch against its transactions first'
        )

    def handle(self, *args, **options):
        batch_id = options.get('batch_id')
        if bool(batch_id) == bool(options['all']):
            raise CommandError('Pass exactly one of --batch <uuid> or --all')

        if batch_id:
            try:
                batches = [CourseBatch.objects.get(pk=batch_id)]
            except (CourseBatch.DoesNotExist, ValidationError):
                raise CommandError(f'Batch {batch_id} not found')
        else:
            batches = CourseBatch.objects.order_by('course_name', 'batch_name')

        failures = 0
        for batch in batches:
            # aggregate rows are provisioned by signal; older batches may predate it
            BatchRevenueAggregate.objects.get_or_create(
                batch=batch,
                defaults={'no_of_participants': batch.participant_capacity},
            )

            try:
                if options['reconcile_accounts']:
                    for account in PaymentAccount.objects.filter(batch=batch):
                        ReconciliationService.reconcile(account)

                aggregate = ReconciliationService.resync_batch(batch)
            except PaymentLedgerError as e:
                failures += 1
                self.stdout.write(self.style.ERROR(f'{batch}: {e.message}'))
                continue

            self.stdout.write(
                f'{batch}: {aggregate.paid_no_of_participants}/{aggregate.no_of_participants} paid, '
                f'revenue {aggregate.revenue_received_total}'
                f'{" (full)" if aggregate.all_fees_collected_status else ""}'
            )

        if failures:
            raise CommandError(f'{failures} batch(es) could not be resynced')

        self.stdout.write(self.style.SUCCESS('Batch revenue resync complete'))

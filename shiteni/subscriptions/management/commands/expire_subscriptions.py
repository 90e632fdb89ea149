from django.core.management.base import BaseCommand
from django.utils import timezone

from shiteni.core.cache_utils import invalidate_cache_pattern, SUBSCRIPTION_KEY_PREFIX
from shiteni.subscriptions.models import Subscription


class Command(BaseCommand):
    help = 'Mark active subscriptions whose end date has passed as expired'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Only report what would change')

    def handle(self, *args, **options):
        overdue = Subscription.objects.filter(status='active', end_date__lte=timezone.now())
        count = overdue.count()

        if options['dry_run']:
            for subscription in overdue.select_related('user'):
                self.stdout.write(f'  Would expire: {subscription.user.email} ({subscription.service_type})')
            self.stdout.write(self.style.WARNING(f'{count} subscription(s) would be expired'))
            return

        overdue.update(status='expired', updated_at=timezone.now())
        if count:
            invalidate_cache_pattern(SUBSCRIPTION_KEY_PREFIX)
        self.stdout.write(self.style.SUCCESS(f'✓ Expired {count} subscription(s)'))

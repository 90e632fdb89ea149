from decimal import Decimal

from django.core.management.base import BaseCommand

from shiteni.core.cache_signals import suspend_cache_signals
from shiteni.core.cache_utils import invalidate_plans_cache
from shiteni.core.roles import SERVICE_TYPES
from shiteni.subscriptions.models import SubscriptionPlan


class Command(BaseCommand):
    help = 'Create the default Basic, Premium and Enterprise plans for every vendor type'

    def add_arguments(self, parser):
        parser.add_argument('--update', action='store_true', help='Update prices/features of existing plans')

    def handle(self, *args, **options):
        plans_config = [
            {
                'plan_type': 'basic',
                'name': 'Basic',
                'price': Decimal('250.00'),
                'max_users': 3,
                'max_staff_accounts': 3,
                'max_storage': 1024,
                'sort_order': 1,
                'is_popular': False,
                'features': ['Core dashboard', 'Up to 3 staff accounts', 'Email support'],
            },
            {
                'plan_type': 'premium',
                'name': 'Premium',
                'price': Decimal('500.00'),
                'max_users': 10,
                'max_staff_accounts': 10,
                'max_storage': 5120,
                'sort_order': 2,
                'is_popular': True,
                'features': ['Everything in Basic', 'Analytics', 'Up to 10 staff accounts', 'Priority support'],
            },
            {
                'plan_type': 'enterprise',
                'name': 'Enterprise',
                'price': Decimal('1000.00'),
                'max_users': None,
                'max_staff_accounts': None,
                'max_storage': 20480,
                'sort_order': 3,
                'is_popular': False,
                'features': ['Everything in Premium', 'Unlimited staff accounts', 'Dedicated account manager'],
            },
        ]

        created_count = 0
        updated_count = 0

        with suspend_cache_signals():
            for vendor_type in SERVICE_TYPES:
                for config in plans_config:
                    defaults = dict(config)
                    defaults['name'] = f"{config['name']} {vendor_type.title()}"
                    defaults['description'] = f"{config['name']} plan for {vendor_type} businesses"
                    plan, created = SubscriptionPlan.objects.get_or_create(
                        vendor_type=vendor_type,
                        plan_type=config['plan_type'],
                        billing_cycle='monthly',
                        defaults=defaults,
                    )
                    if created:
                        self.stdout.write(self.style.SUCCESS(f'✓ Created plan: {plan.name}'))
                        created_count += 1
                    elif options['update']:
                        for field, value in defaults.items():
                            setattr(plan, field, value)
                        plan.save()
                        self.stdout.write(f'  Updated plan: {plan.name}')
                        updated_count += 1
                    else:
                        self.stdout.write(f'  Plan already exists: {plan.name}')
                invalidate_plans_cache(vendor_type)

        self.stdout.write(self.style.SUCCESS(
            f'\nDone. Created {created_count} plan(s), updated {updated_count} plan(s).'
        ))

# Generated manually for the initial schema

import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Bus',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('bus_name', models.CharField(max_length=100)),
                ('number_plate', models.CharField(max_length=20, unique=True)),
                ('number_of_seats', models.PositiveIntegerField(default=50)),
                ('bus_type', models.CharField(blank=True, max_length=50)),
                ('has_ac', models.BooleanField(default=False)),
                ('image', models.CharField(blank=True, max_length=500)),
                ('amenities', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('maintenance', 'Maintenance')], default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='buses', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_fleet',
                'ordering': ['bus_name'],
            },
        ),
        migrations.CreateModel(
            name='BusStop',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('stop_name', models.CharField(max_length=100)),
                ('stop_type', models.CharField(choices=[('stop', 'Stop'), ('terminal', 'Terminal')], default='stop', max_length=20)),
                ('district', models.CharField(blank=True, max_length=100)),
                ('province', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bus_stops', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_stops',
                'ordering': ['stop_name'],
                'unique_together': {('vendor', 'stop_name')},
            },
        ),
        migrations.CreateModel(
            name='BusFare',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('route_name', models.CharField(max_length=200)),
                ('origin', models.CharField(max_length=100)),
                ('destination', models.CharField(max_length=100)),
                ('fare_amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(choices=[('ZMW', 'Zambian Kwacha'), ('USD', 'US Dollar')], default='ZMW', max_length=3)),
                ('discount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('seasonal', 'Seasonal')], default='active', max_length=20)),
                ('valid_from', models.DateField(blank=True, null=True)),
                ('valid_until', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bus_fares', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_fares',
                'ordering': ['route_name'],
            },
        ),
        migrations.CreateModel(
            name='BusRoute',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('route_name', models.CharField(max_length=200)),
                ('stops', models.JSONField(default=list)),
                ('fare_segments', models.JSONField(blank=True, default=list)),
                ('total_distance', models.DecimalField(blank=True, decimal_places=1, max_digits=8, null=True)),
                ('is_bidirectional', models.BooleanField(default=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bus_routes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_routes',
                'ordering': ['route_name'],
            },
        ),
        migrations.CreateModel(
            name='BusTrip',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('trip_name', models.CharField(max_length=200)),
                ('departure_times_to', models.JSONField(default=list)),
                ('departure_times_from', models.JSONField(blank=True, default=list)),
                ('days_of_week', models.JSONField(default=list)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('cancelled', 'Cancelled')], default='active', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('bus', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trips', to='bus.bus')),
                ('route', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='trips', to='bus.busroute')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bus_trips', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_trips',
                'ordering': ['trip_name'],
            },
        ),
        migrations.CreateModel(
            name='BusSchedule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('departure_time', models.CharField(max_length=5)),
                ('arrival_time', models.CharField(blank=True, max_length=5)),
                ('date', models.DateField()),
                ('total_seats', models.PositiveIntegerField(default=50)),
                ('available_seats', models.PositiveIntegerField(default=50)),
                ('fare', models.DecimalField(decimal_places=2, default=Decimal('100.00'), max_digits=10)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('boarding', 'Boarding'), ('departed', 'Departed'), ('arrived', 'Arrived'), ('cancelled', 'Cancelled')], default='scheduled', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('bus', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedules', to='bus.bus')),
                ('route', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedules', to='bus.busroute')),
                ('trip', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='schedules', to='bus.bustrip')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bus_schedules', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_schedules',
                'ordering': ['date', 'departure_time'],
                'unique_together': {('trip', 'date')},
            },
        ),
        migrations.CreateModel(
            name='BusBooking',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('booking_number', models.CharField(max_length=40, unique=True)),
                ('passenger_name', models.CharField(max_length=200)),
                ('passenger_email', models.EmailField(max_length=254)),
                ('passenger_phone', models.CharField(max_length=20)),
                ('schedule_key', models.CharField(db_index=True, max_length=50)),
                ('travel_date', models.DateField()),
                ('boarding_stop', models.CharField(max_length=100)),
                ('boarding_order', models.PositiveIntegerField()),
                ('alighting_stop', models.CharField(max_length=100)),
                ('alighting_order', models.PositiveIntegerField()),
                ('seat_numbers', models.JSONField(blank=True, default=list)),
                ('passengers', models.PositiveIntegerField(default=1)),
                ('fare', models.DecimalField(decimal_places=2, max_digits=10)),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('cancelled', 'Cancelled'), ('completed', 'Completed')], default='pending', max_length=20)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('failed', 'Failed'), ('refunded', 'Refunded')], default='pending', max_length=20)),
                ('payment_method', models.CharField(blank=True, max_length=30)),
                ('special_requests', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='placed_bus_bookings', to=settings.AUTH_USER_MODEL)),
                ('trip', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='bookings', to='bus.bustrip')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bus_bookings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_bookings',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['vendor', 'status'], name='bus_booking_vendor__f0c19c_idx'), models.Index(fields=['travel_date'], name='bus_booking_travel__bfff77_idx')],
            },
        ),
        migrations.CreateModel(
            name='BusTicket',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('ticket_number', models.CharField(max_length=20, unique=True)),
                ('passenger_name', models.CharField(max_length=200)),
                ('passenger_phone', models.CharField(max_length=20)),
                ('passenger_email', models.EmailField(blank=True, max_length=254)),
                ('id_type', models.CharField(choices=[('national_id', 'National ID'), ('passport', 'Passport'), ('drivers_license', 'Drivers License'), ('other', 'Other')], default='national_id', max_length=20)),
                ('id_number', models.CharField(blank=True, max_length=50)),
                ('route_name', models.CharField(blank=True, max_length=200)),
                ('boarding_point', models.CharField(max_length=100)),
                ('dropping_point', models.CharField(max_length=100)),
                ('seat_number', models.CharField(blank=True, max_length=10)),
                ('fare', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(default='ZMW', max_length=3)),
                ('payment_method', models.CharField(choices=[('cash', 'Cash'), ('card', 'Card'), ('mobile_money', 'Mobile Money')], default='cash', max_length=20)),
                ('payment_status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('refunded', 'Refunded')], default='paid', max_length=20)),
                ('departure_date', models.DateField()),
                ('departure_time', models.CharField(blank=True, max_length=5)),
                ('status', models.CharField(choices=[('active', 'Active'), ('used', 'Used'), ('cancelled', 'Cancelled'), ('refunded', 'Refunded')], default='active', max_length=20)),
                ('sold_by_name', models.CharField(blank=True, max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('bus', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tickets', to='bus.bus')),
                ('sold_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('trip', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tickets', to='bus.bustrip')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bus_tickets', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_tickets',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='BusDispatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dispatch_id', models.CharField(max_length=20)),
                ('departure_date', models.DateField()),
                ('dispatch_stop', models.CharField(max_length=100)),
                ('destination_stop', models.CharField(blank=True, max_length=100)),
                ('sender_name', models.CharField(max_length=200)),
                ('sender_contact', models.CharField(max_length=50)),
                ('receiver_name', models.CharField(max_length=200)),
                ('receiver_contact', models.CharField(max_length=50)),
                ('parcel_description', models.TextField()),
                ('parcel_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_transit', 'In Transit'), ('delivered', 'Delivered'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('bus', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='dispatches', to='bus.bus')),
                ('trip', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='dispatches', to='bus.bustrip')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bus_dispatches', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bus_dispatches',
                'ordering': ['-created_at'],
                'unique_together': {('vendor', 'dispatch_id')},
            },
        ),
    ]

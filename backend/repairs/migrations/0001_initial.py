import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


PROVIDER_TYPE_CHOICES = [
    ('technician', 'Mobile Technician'),
    ('service_center', 'Service Centre'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='IntakeLocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('address', models.TextField(blank=True)),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'intake_locations',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='RepairRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('device_type', models.CharField(max_length=50)),
                ('device_brand', models.CharField(blank=True, max_length=100)),
                ('device_model', models.CharField(blank=True, max_length=100)),
                ('issue_description', models.TextField()),
                ('service_type', models.CharField(default='on_site', max_length=30)),
                ('customer_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('customer_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('dispatched', 'Dispatched'), ('assigned', 'Assigned'), ('no_providers', 'No Providers Available'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('assigned_provider_type', models.CharField(blank=True, choices=PROVIDER_TYPE_CHOICES, max_length=20, null=True)),
                ('assigned_provider_id', models.PositiveBigIntegerField(blank=True, null=True)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('dispatch_round', models.PositiveIntegerField(default=0)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='repair_requests', to=settings.AUTH_USER_MODEL)),
                ('intake_location', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='repair_requests', to='repairs.intakelocation')),
            ],
            options={
                'db_table': 'repair_requests',
                'ordering': ['-created_at'],
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            models.Q(assigned_provider_id__isnull=True, assigned_provider_type__isnull=True)
                            & ~models.Q(status__in=['assigned', 'completed'])
                        ) | (
                            models.Q(assigned_provider_id__isnull=False, assigned_provider_type__isnull=False)
                            & models.Q(status__in=['assigned', 'completed', 'cancelled'])
                        ),
                        name='repair_request_assignment_matches_status',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='JobOffer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('provider_type', models.CharField(choices=PROVIDER_TYPE_CHOICES, max_length=20)),
                ('provider_id', models.PositiveBigIntegerField()),
                ('distance_km', models.FloatField()),
                ('dispatch_round', models.PositiveIntegerField()),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('declined', 'Declined'), ('expired', 'Expired')], default='pending', max_length=20)),
                ('offered_at', models.DateTimeField()),
                ('expires_at', models.DateTimeField()),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('repair_request', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='offers', to='repairs.repairrequest')),
            ],
            options={
                'db_table': 'job_offers',
                'ordering': ['distance_km'],
                'indexes': [
                    models.Index(fields=['status', 'expires_at'], name='job_offer_status_expiry_idx'),
                    models.Index(fields=['provider_type', 'provider_id', 'status'], name='job_offer_provider_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('repair_request', 'dispatch_round', 'provider_type', 'provider_id'), name='unique_offer_per_provider_per_round'),
                    models.UniqueConstraint(condition=models.Q(status='accepted'), fields=('repair_request',), name='single_accepted_offer_per_request'),
                ],
            },
        ),
    ]

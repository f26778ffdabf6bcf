from django.db import models
from django.db.models import Q
from django.conf import settings

from providers.models import PROVIDER_TYPE_CHOICES


class IntakeLocation(models.Model):
    """Drop-off point (shop counter or partner corner) where a device can be left."""

    name = models.CharField(max_length=200)
    address = models.TextField(blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'intake_locations'
        ordering = ['name']

    def __str__(self):
        return self.name


class RepairRequest(models.Model):
    """A repair job waiting to be assigned to exactly one provider."""

    STATUS_PENDING = 'pending'
    STATUS_DISPATCHED = 'dispatched'
    STATUS_ASSIGNED = 'assigned'
    STATUS_NO_PROVIDERS = 'no_providers'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_DISPATCHED, 'Dispatched'),
        (STATUS_ASSIGNED, 'Assigned'),
        (STATUS_NO_PROVIDERS, 'No Providers Available'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    # Statuses from which a new dispatch round may start
    DISPATCHABLE_STATUSES = (STATUS_PENDING, STATUS_DISPATCHED, STATUS_NO_PROVIDERS)
    CLOSED_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='repair_requests'
    )

    # Device & problem
    device_type = models.CharField(max_length=50)
    device_brand = models.CharField(max_length=100, blank=True)
    device_model = models.CharField(max_length=100, blank=True)
    issue_description = models.TextField()
    service_type = models.CharField(max_length=30, default='on_site')

    # Where the job is; falls back to the intake location when unset
    customer_latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    customer_longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    intake_location = models.ForeignKey(
        IntakeLocation,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='repair_requests'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    # Assignment (guard columns for the accept compare-and-set)
    assigned_provider_type = models.CharField(max_length=20, choices=PROVIDER_TYPE_CHOICES, null=True, blank=True)
    assigned_provider_id = models.PositiveBigIntegerField(null=True, blank=True)
    assigned_at = models.DateTimeField(null=True, blank=True)

    # Current dispatch round
    dispatch_round = models.PositiveIntegerField(default=0)
    expires_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'repair_requests'
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(assigned_provider_id__isnull=True, assigned_provider_type__isnull=True)
                    & ~Q(status__in=['assigned', 'completed'])
                ) | (
                    Q(assigned_provider_id__isnull=False, assigned_provider_type__isnull=False)
                    & Q(status__in=['assigned', 'completed', 'cancelled'])
                ),
                name='repair_request_assignment_matches_status',
            ),
        ]

    def __str__(self):
        return f"Repair #{self.id} - {self.device_type} - {self.status}"

    @property
    def is_assigned(self):
        return self.assigned_provider_id is not None


class JobOffer(models.Model):
    """One provider's time-boxed chance to take a repair request."""

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_DECLINED = 'declined'
    STATUS_EXPIRED = 'expired'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_DECLINED, 'Declined'),
        (STATUS_EXPIRED, 'Expired'),
    ]

    repair_request = models.ForeignKey(
        RepairRequest,
        on_delete=models.PROTECT,
        related_name='offers'
    )

    provider_type = models.CharField(max_length=20, choices=PROVIDER_TYPE_CHOICES)
    provider_id = models.PositiveBigIntegerField()

    distance_km = models.FloatField()
    dispatch_round = models.PositiveIntegerField()

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    offered_at = models.DateTimeField()
    expires_at = models.DateTimeField()
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'job_offers'
        ordering = ['distance_km']
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='job_offer_status_expiry_idx'),
            models.Index(fields=['provider_type', 'provider_id', 'status'], name='job_offer_provider_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['repair_request', 'dispatch_round', 'provider_type', 'provider_id'],
                name='unique_offer_per_provider_per_round'
            ),
            models.UniqueConstraint(
                fields=['repair_request'],
                condition=Q(status='accepted'),
                name='single_accepted_offer_per_request'
            ),
        ]

    def __str__(self):
        return f"Offer #{self.id} - Repair {self.repair_request_id} -> {self.provider_type} {self.provider_id}"

from django.db import models
from django.conf import settings

User = settings.AUTH_USER_MODEL

# Type tag stored on job offers and assignments
PROVIDER_TYPE_TECHNICIAN = 'technician'
PROVIDER_TYPE_SERVICE_CENTER = 'service_center'

PROVIDER_TYPE_CHOICES = [
    (PROVIDER_TYPE_TECHNICIAN, 'Mobile Technician'),
    (PROVIDER_TYPE_SERVICE_CENTER, 'Service Centre'),
]


class ProviderBase(models.Model):
    """Fields shared by every kind of service provider."""

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_SUSPENDED = 'suspended'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending Approval'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_SUSPENDED, 'Suspended'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)

    # Only approved providers take part in matching
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    approved_at = models.DateTimeField(null=True, blank=True)

    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class MobileTechnician(ProviderBase):
    """Independent technician who travels to the customer within a personal radius."""

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='technician_profile')
    full_name = models.CharField(max_length=150)
    service_radius_km = models.DecimalField(max_digits=6, decimal_places=2, default=15)

    class Meta:
        db_table = 'mobile_technicians'
        ordering = ['full_name']

    def __str__(self):
        return f"{self.full_name} ({self.get_status_display()})"


class ServiceCenter(ProviderBase):
    """Repair centre with a fixed platform-wide service radius."""

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='service_centers')
    business_name = models.CharField(max_length=200)

    class Meta:
        db_table = 'service_centers'
        ordering = ['business_name']

    def __str__(self):
        return f"{self.business_name} ({self.get_status_display()})"

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone


class ServiceDay(models.Model):
    """
    A day the church runs transportation (e.g. Sunday service).
    """
    organization = models.ForeignKey('users.Organization', on_delete=models.CASCADE, related_name='service_days')
    name = models.CharField(max_length=255)
    day = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return f"{self.name} ({self.day})"


class Address(models.Model):
    """
    A rider's pickup address. latitude/longitude stay empty until geocoded.
    """
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='addresses')
    street = models.CharField(max_length=255)
    city = models.CharField(max_length=120)
    province = models.CharField(max_length=120, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=80, default="Canada")

    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    # the rider's "home" address
    is_default = models.BooleanField(default=False)

    def __str__(self):
        return f"{self.street}, {self.city}"


class Route(models.Model):
    """
    A planned pickup sequence for one driver on one service day.
    Lifecycle: Planned -> In progress -> Completed, or Cancelled.
    Never deleted by the application; cancellation is a status.
    """
    class Status(models.TextChoices):
        PLANNED = "PLANNED", "Planned"
        IN_PROGRESS = "IN_PROGRESS", "In Progress"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey('users.Organization', on_delete=models.PROTECT, related_name='routes')
    driver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='driven_routes')
    service_day = models.ForeignKey(ServiceDay, on_delete=models.PROTECT, related_name='routes')
    route_date = models.DateField()

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PLANNED)

    start_lat = models.FloatField()
    start_lng = models.FloatField()

    # Derived at planning time
    total_distance = models.FloatField(null=True, blank=True, help_text="km, sum of known legs")
    estimated_minutes = models.PositiveIntegerField(null=True, blank=True)
    optimization_score = models.PositiveSmallIntegerField(null=True, blank=True)

    planned_start_time = models.DateTimeField(null=True, blank=True)
    actual_start_time = models.DateTimeField(null=True, blank=True)
    actual_end_time = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=['organization', 'driver', 'route_date'], name='route_org_driver_date_idx'),
            models.Index(fields=['organization', 'route_date'], name='route_org_date_idx'),
        ]

    def __str__(self):
        return f"Route {self.id} - {self.status}"


class PickupRequest(models.Model):
    """
    A rider's request to be picked up on a service day.
    route is the non-cancelled route currently holding the request.
    """
    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        ACCEPTED = "ACCEPTED", "Accepted"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    organization = models.ForeignKey('users.Organization', on_delete=models.CASCADE, related_name='pickup_requests')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='pickup_requests')
    address = models.ForeignKey(Address, on_delete=models.PROTECT, related_name='pickup_requests')
    service_day = models.ForeignKey(ServiceDay, on_delete=models.CASCADE, related_name='pickup_requests')

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)

    # Driver/route are set only once the request is planned into a route
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_pickups'
    )
    route = models.ForeignKey(Route, on_delete=models.SET_NULL, null=True, blank=True, related_name='pickup_requests')

    distance = models.FloatField(null=True, blank=True, help_text="km, leg from previous stop")
    estimated_minutes = models.FloatField(null=True, blank=True)
    priority = models.IntegerField(default=0)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Pickup #{self.id} - {self.status}"


class Stop(models.Model):
    """
    One visit of a route. Immutable once written.
    """
    route = models.ForeignKey(Route, on_delete=models.CASCADE, related_name='stops')
    pickup_request = models.ForeignKey(PickupRequest, on_delete=models.PROTECT, related_name='stops')
    position = models.PositiveIntegerField()

    leg_distance = models.FloatField(null=True, blank=True)
    leg_minutes = models.FloatField(null=True, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    class Meta:
        ordering = ['position']
        constraints = [
            models.UniqueConstraint(fields=['route', 'position'], name='unique_stop_position_per_route'),
            models.UniqueConstraint(fields=['route', 'pickup_request'], name='unique_pickup_per_route'),
        ]

    def __str__(self):
        return f"Stop {self.position} of {self.route_id}"

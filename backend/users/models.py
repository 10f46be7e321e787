from django.contrib.auth.models import AbstractUser
from django.db import models
from phonenumber_field.modelfields import PhoneNumberField


class Organization(models.Model):
    """
    A tenant: one church. Every route and pickup request belongs to exactly one.
    """
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    contact_email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class User(AbstractUser):
    class Roles(models.TextChoices):
        USER = "USER", "Member"
        TRANSPORTATION_TEAM = "TRANSPORTATION_TEAM", "Transportation Team"
        ADMIN = "ADMIN", "Admin"
        PLATFORM_ADMIN = "PLATFORM_ADMIN", "Platform Admin"
        PLATFORM_USER = "PLATFORM_USER", "Platform User"

    # Role fields define permissions in the app
    # USER: Can request pickups
    # TRANSPORTATION_TEAM: Drives routes, sees only their own
    # ADMIN: Plans routes and reads analytics for their church
    # PLATFORM_*: Cross-organization staff
    role = models.CharField(max_length=32, choices=Roles.choices, default=Roles.USER)

    # Platform staff may have no organization of their own
    organization = models.ForeignKey(
        Organization, on_delete=models.PROTECT, null=True, blank=True, related_name="members"
    )

    phone_number = PhoneNumberField(blank=True, null=True, region="CA")

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

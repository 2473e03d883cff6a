"""
User Models.

Custom user model and role configuration for authentication and authorization.
"""

from django.db import models
from django.contrib.auth.models import AbstractUser
from django.contrib.auth.validators import UnicodeUsernameValidator

from domain.shared.value_objects import UserRole, has_permission
from .base import TimeStampedMixin

import uuid


class User(AbstractUser):
    """
    Custom User model.

    Every user holds exactly one application role. Permissions default to
    the role's permission set and may be widened per user.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    username_validator = UnicodeUsernameValidator()

    username = models.CharField(
        max_length=150,
        unique=True,
        validators=[username_validator],
        verbose_name="Username"
    )
    email = models.EmailField(
        unique=True,
        verbose_name="Email"
    )

    # Work info
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices(),
        default=UserRole.VIEWER.value,
        db_index=True,
        verbose_name="Role"
    )
    department = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Department"
    )
    phone = models.CharField(
        max_length=20,
        blank=True,
        verbose_name="Phone"
    )
    permissions = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Permissions",
        help_text="Permission codes such as 'purchase:approve'; '*' grants everything"
    )

    # Metadata
    last_activity = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Last activity"
    )

    class Meta:
        db_table = 'users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['first_name', 'last_name']

    def __str__(self):
        return self.get_full_name() or self.email or self.username

    def save(self, *args, **kwargs):
        if not self.permissions and self.role:
            self.permissions = UserRole(self.role).default_permissions
        super().save(*args, **kwargs)

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    @property
    def role_enum(self):
        return UserRole(self.role)

    def has_erp_permission(self, permission: str) -> bool:
        """Check an ERP permission code such as 'purchase:approve'."""
        if not self.is_active:
            return False
        if self.is_superuser:
            return True
        return has_permission(self.permissions, permission)

    def set_role(self, role, reset_permissions=True):
        self.role = UserRole(role).value
        if reset_permissions:
            self.permissions = UserRole(role).default_permissions


class Role(TimeStampedMixin, models.Model):
    """
    Role configuration.

    Seeded from the built-in role table by `init_system`; editable afterwards
    so that administrators can change the defaults handed to new users.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    code = models.CharField(
        max_length=20,
        unique=True,
        choices=UserRole.choices(),
        verbose_name="Code"
    )
    name = models.CharField(
        max_length=100,
        verbose_name="Name"
    )
    description = models.TextField(
        blank=True,
        verbose_name="Description"
    )
    default_permissions = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Default permissions"
    )
    dashboard = models.CharField(
        max_length=30,
        default='summary',
        verbose_name="Dashboard"
    )
    is_system_role = models.BooleanField(
        default=True,
        verbose_name="System role"
    )

    class Meta:
        db_table = 'roles'
        verbose_name = 'Role'
        verbose_name_plural = 'Roles'
        ordering = ['code']

    def __str__(self):
        return self.name

"""
User Service.

Role configuration and seeding of the company's default accounts.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from django.conf import settings
from django.db import transaction

from domain.shared.value_objects import UserRole
from infrastructure.persistence.models import Role, User

logger = logging.getLogger(__name__)


EMAIL_DOMAIN = 'triovisioninternational.com'

# (username, first name, last name, role, department, phone)
DEFAULT_USERS = [
    ('sunil', 'Sunil', 'Kumar', 'md', 'Management', '+91 9876543210'),
    ('rajesh', 'Rajesh', 'Reddy', 'md', 'Management', '+91 9876543201'),
    ('venkat', 'Venkat', 'Rao', 'md', 'Management', '+91 9876543202'),
    ('admin', 'System', 'Admin', 'admin', 'IT', '+91 9876543211'),
    ('naveen', 'Naveen', 'Kumar', 'hr', 'HR', '+91 9876543212'),
    ('naresh', 'Naresh', 'Reddy', 'hr', 'HR', '+91 9876543213'),
    ('dhathri', 'Dhathri', 'S', 'hr', 'HR', '+91 9876543214'),
    ('prasuna', 'Prasuna', 'K', 'hr', 'HR', '+91 9876543215'),
    ('store1', 'Store', 'Manager 1', 'store', 'Store', '+91 9876543216'),
    ('store2', 'Store', 'Manager 2', 'store', 'Store', '+91 9876543217'),
    ('supervisor', 'Production', 'Supervisor', 'supervisor', 'Production', '+91 9876543218'),
    ('pm', 'Project', 'Manager', 'pm', 'Projects', '+91 9876543219'),
    ('purchase', 'Purchase', 'Manager', 'purchase', 'Purchase', '+91 9876543220'),
    ('design', 'Design', 'Engineer', 'design', 'Design', '+91 9876543221'),
    ('quality', 'Quality', 'Inspector', 'quality', 'Quality', '+91 9876543222'),
]


@dataclass
class SeedReport:
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


def permissions_for_role(role):
    """Default permissions from the role table, falling back to the built-in set."""
    configured = Role.objects.filter(code=role).values_list('default_permissions', flat=True).first()
    if configured:
        return list(configured)
    return UserRole(role).default_permissions


def sync_roles():
    """Create the built-in roles that are missing. Returns the number created."""
    created = 0
    for role in UserRole:
        _, was_created = Role.objects.get_or_create(
            code=role.value,
            defaults={
                'name': role.display_name,
                'default_permissions': role.default_permissions,
                'dashboard': role.dashboard,
            },
        )
        created += int(was_created)
    return created


@transaction.atomic
def seed_users(password=None, reset_passwords=False, domain=EMAIL_DOMAIN):
    """
    Create the default company users.

    Existing accounts (matched by email) are skipped, or get the default
    password and role again when `reset_passwords` is set.
    """
    password = password or settings.DEFAULT_USER_PASSWORD
    report = SeedReport()

    for username, first_name, last_name, role, department, phone in DEFAULT_USERS:
        email = f"{username}@{domain}"
        user = User.objects.filter(email__iexact=email).first()
        if user is not None:
            if reset_passwords:
                user.set_password(password)
                user.set_role(role)
                user.is_active = True
                user.save()
                report.updated.append(email)
            else:
                report.skipped.append(email)
            continue

        user = User(
            username=username,
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role,
            department=department,
            phone=phone,
            permissions=permissions_for_role(role),
            is_staff=role in ('md', 'admin'),
        )
        user.set_password(password)
        user.save()
        report.created.append(email)

    logger.info(
        f"Seeded users: {len(report.created)} created, "
        f"{len(report.updated)} reset, {len(report.skipped)} skipped"
    )
    return report


def change_role(user, role, changed_by=None):
    user.set_role(role, reset_permissions=False)
    user.permissions = permissions_for_role(role)
    user.save(update_fields=['role', 'permissions'])
    logger.info(f"{changed_by} changed role of {user} to {role}")
    return user

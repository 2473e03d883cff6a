"""
Base ORM Models and Mixins.

Provides common functionality for all models:
- UUID primary keys
- Timestamps (created_at, updated_at)
- Soft delete
- Version control
- Audit tracking
- Sequential document numbers (PO-YYMMDD-0001)
"""

import logging
import uuid

from django.db import IntegrityError, models, transaction
from django.db.models.functions import Length
from django.conf import settings
from django.utils import timezone
from simple_history.models import HistoricalRecords

from domain.shared.exceptions import check_transition
from domain.shared.value_objects import DocumentNumber

logger = logging.getLogger(__name__)


class TimeStampedMixin(models.Model):
    """Mixin for created_at and updated_at timestamps."""

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created at"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated at"
    )

    class Meta:
        abstract = True


class SoftDeleteMixin(models.Model):
    """Mixin for soft delete functionality."""

    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Deleted at"
    )
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="%(class)s_deleted",
        verbose_name="Deleted by"
    )

    class Meta:
        abstract = True

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def soft_delete(self, user=None):
        self.deleted_at = timezone.now()
        self.deleted_by = user
        self.save(update_fields=['deleted_at', 'deleted_by', 'updated_at'])

    def restore(self):
        self.deleted_at = None
        self.deleted_by = None
        self.save(update_fields=['deleted_at', 'deleted_by', 'updated_at'])


class VersionedMixin(models.Model):
    """Mixin for optimistic locking with version control."""

    version = models.PositiveIntegerField(
        default=1,
        verbose_name="Version"
    )

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            self.version += 1
            update_fields = kwargs.get('update_fields')
            if update_fields is not None:
                kwargs['update_fields'] = set(update_fields) | {'version'}
        super().save(*args, **kwargs)


class AuditMixin(models.Model):
    """Mixin for tracking who created/modified records."""

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="%(class)s_created",
        verbose_name="Created by"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="%(class)s_updated",
        verbose_name="Updated by"
    )

    class Meta:
        abstract = True


class BaseModel(TimeStampedMixin, SoftDeleteMixin, VersionedMixin, AuditMixin):
    """
    Base model with all common functionality.

    Includes:
    - UUID primary key
    - Timestamps (created_at, updated_at)
    - Soft delete (deleted_at, deleted_by)
    - Version control (version)
    - Audit (created_by, updated_by)
    - Active flag (is_active)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        verbose_name="ID"
    )

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        verbose_name="Active"
    )

    class Meta:
        abstract = True

    def __str__(self):
        return str(self.id)


class BaseModelWithHistory(BaseModel):
    """
    Base model with historical records tracking.

    Uses django-simple-history to track all changes.
    """

    history = HistoricalRecords(inherit=True)

    class Meta:
        abstract = True


# =============================================================================
# DOCUMENTS
# =============================================================================

class DocumentMixin(models.Model):
    """
    Numbered business document with a status workflow.

    Subclasses set NUMBER_PREFIX and TRANSITIONS. The number is assigned
    on first save as PREFIX-YYMMDD-NNNN, sequential per prefix and day.
    """

    NUMBER_PREFIX = ''
    NUMBER_LONG_DATE = False
    NUMBER_WIDTH = 4
    NUMBER_ATTEMPTS = 5
    TRANSITIONS = {}

    number = models.CharField(
        max_length=30,
        unique=True,
        db_index=True,
        blank=True,
        verbose_name="Document number"
    )

    class Meta:
        abstract = True

    @classmethod
    def generate_number(cls, day=None):
        """
        Next free number for the given day.

        Numbers of one day share a stem, so a longer number carries a
        larger sequence once it outgrows the zero padding.
        """
        day = day or timezone.localdate()
        first = DocumentNumber(cls.NUMBER_PREFIX, day, 1, cls.NUMBER_LONG_DATE, cls.NUMBER_WIDTH)
        last_number = (
            cls._base_manager.filter(number__startswith=first.stem)
            .annotate(number_length=Length('number'))
            .order_by('-number_length', '-number')
            .values_list('number', flat=True)
            .first()
        )
        if not last_number:
            return str(first)
        last_seq = DocumentNumber.parse_sequence(last_number) or 0
        return str(DocumentNumber(cls.NUMBER_PREFIX, day, last_seq + 1,
                                  cls.NUMBER_LONG_DATE, cls.NUMBER_WIDTH))

    def save(self, *args, **kwargs):
        if self.number:
            return super().save(*args, **kwargs)
        # a concurrent insert may take the same number first
        for attempt in range(1, self.NUMBER_ATTEMPTS + 1):
            self.number = self.generate_number()
            try:
                with transaction.atomic():
                    return super().save(*args, **kwargs)
            except IntegrityError:
                if attempt == self.NUMBER_ATTEMPTS:
                    raise
                logger.warning(f"Document number {self.number} taken, retrying")
                self.number = ''

    def transition_to(self, target, save=True, **extra_fields):
        """
        Move to `target` status if the transition table allows it.

        Extra fields are assigned and saved together with the status.
        """
        check_transition(self._meta.verbose_name, self.TRANSITIONS, self.status, target)
        self.status = target
        for name, value in extra_fields.items():
            setattr(self, name, value)
        if save:
            self.save(update_fields=['status', 'updated_at', *extra_fields.keys()])
        return self


# =============================================================================
# MANAGER FOR SOFT DELETE
# =============================================================================

class ActiveManager(models.Manager):
    """Manager that excludes soft-deleted records by default."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class AllObjectsManager(models.Manager):
    """Manager that includes all records, including soft-deleted."""

    pass

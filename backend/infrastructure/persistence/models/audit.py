"""
Audit ORM Models.

Audit trail, in-app notifications, inbound webhook events and
system-wide settings.
"""

from django.db import models
from django.conf import settings
from django.utils import timezone

import uuid


class AuditLog(models.Model):
    """
    Audit log for business documents.

    Tracks who did what to which document, and when.
    """

    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('submit', 'Submit'),
        ('approve', 'Approve'),
        ('reject', 'Reject'),
        ('cancel', 'Cancel'),
        ('stock_check', 'Stock check'),
        ('generate_pr', 'Generate PR'),
        ('convert', 'Convert'),
        ('receive', 'Receive'),
        ('inspect', 'Inspect'),
        ('post_stock', 'Post to stock'),
        ('issue', 'Issue'),
        ('adjust', 'Adjust'),
        ('return', 'Return'),
        ('reserve', 'Reserve'),
        ('qc_pass', 'QC pass'),
        ('qc_fail', 'QC fail'),
        ('dispatch', 'Dispatch'),
        ('deliver', 'Deliver'),
        ('status_change', 'Status change'),
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('export', 'Export'),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    # When
    timestamp = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name="Time"
    )

    # Who
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        verbose_name="User"
    )
    user_ip = models.GenericIPAddressField(
        null=True,
        blank=True,
        verbose_name="IP address"
    )
    user_agent = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="User agent"
    )

    # What action
    action = models.CharField(
        max_length=20,
        choices=ACTION_CHOICES,
        db_index=True,
        verbose_name="Action"
    )

    # Which document
    document_type = models.CharField(
        max_length=50,
        blank=True,
        db_index=True,
        verbose_name="Document type"
    )
    document_id = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        verbose_name="Document ID"
    )
    document_number = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Document number"
    )

    details = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Details"
    )

    class Meta:
        db_table = 'audit_log'
        verbose_name = 'Audit log entry'
        verbose_name_plural = 'Audit log'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['document_type', 'document_id'], name='audit_log_document_idx'),
            models.Index(fields=['user', 'timestamp'], name='audit_log_user_time_idx'),
            models.Index(fields=['action', 'timestamp'], name='audit_log_action_time_idx'),
        ]

    def __str__(self):
        return f"{self.timestamp}: {self.user} - {self.get_action_display()} {self.document_number}"


class Notification(models.Model):
    """
    In-app notification addressed to roles and/or a single user.
    """

    TYPE_CHOICES = [
        ('approval_required', 'Approval required'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
        ('pr_created', 'Purchase requisition created'),
        ('po_created', 'Purchase order created'),
        ('goods_received', 'Goods received'),
        ('qc_result', 'QC result'),
        ('stock_alert', 'Stock alert'),
        ('requisition', 'Material requisition'),
        ('material_issued', 'Material issued'),
        ('dispatch', 'Dispatch'),
        ('info', 'Information'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Low'),
        ('normal', 'Normal'),
        ('high', 'High'),
        ('urgent', 'Urgent'),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    notification_type = models.CharField(
        max_length=30,
        choices=TYPE_CHOICES,
        default='info',
        verbose_name="Type"
    )
    title = models.CharField(
        max_length=255,
        verbose_name="Title"
    )
    message = models.TextField(
        blank=True,
        verbose_name="Message"
    )

    # Related document
    document_type = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Document type"
    )
    document_id = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Document ID"
    )
    document_number = models.CharField(
        max_length=50,
        blank=True,
        verbose_name="Document number"
    )

    # Recipients
    for_roles = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Roles"
    )
    for_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notifications',
        verbose_name="User"
    )

    priority = models.CharField(
        max_length=10,
        choices=PRIORITY_CHOICES,
        default='normal',
        verbose_name="Priority"
    )
    is_read = models.BooleanField(
        default=False,
        db_index=True,
        verbose_name="Read"
    )
    read_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Read at"
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='sent_notifications',
        verbose_name="Created by"
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name="Created at"
    )

    class Meta:
        db_table = 'notifications'
        verbose_name = 'Notification'
        verbose_name_plural = 'Notifications'
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def is_for(self, user):
        if self.for_user_id and self.for_user_id == user.pk:
            return True
        return bool(user.role and user.role in (self.for_roles or []))

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])
        return self


class NotificationRole(models.Model):
    """
    One addressed role of a notification.

    Mirrors `Notification.for_roles` so role inboxes are filtered in
    the database.
    """

    id = models.BigAutoField(primary_key=True)

    notification = models.ForeignKey(
        Notification,
        on_delete=models.CASCADE,
        related_name='target_roles',
        verbose_name="Notification"
    )
    role = models.CharField(
        max_length=30,
        db_index=True,
        verbose_name="Role"
    )

    class Meta:
        db_table = 'notification_roles'
        verbose_name = 'Notification role'
        verbose_name_plural = 'Notification roles'
        unique_together = [['notification', 'role']]

    def __str__(self):
        return f"{self.notification_id} -> {self.role}"


class WebhookEvent(models.Model):
    """
    Payload received on an inbound webhook, stored for later processing.
    """

    STATUS_CHOICES = [
        ('received', 'Received'),
        ('processed', 'Processed'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    source = models.CharField(
        max_length=50,
        default='n8n',
        db_index=True,
        verbose_name="Source"
    )
    event_type = models.CharField(
        max_length=100,
        blank=True,
        verbose_name="Event type"
    )
    payload = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Payload"
    )
    received_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name="Received at"
    )
    status = models.CharField(
        max_length=15,
        choices=STATUS_CHOICES,
        default='received',
        db_index=True,
        verbose_name="Status"
    )
    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Processed at"
    )
    error = models.TextField(
        blank=True,
        verbose_name="Error"
    )

    class Meta:
        db_table = 'webhook_events'
        verbose_name = 'Webhook event'
        verbose_name_plural = 'Webhook events'
        ordering = ['-received_at']

    def __str__(self):
        return f"{self.source} {self.event_type or 'event'} @ {self.received_at}"


class SystemSetting(models.Model):
    """
    System-wide settings stored in database.
    """

    key = models.CharField(
        max_length=100,
        unique=True,
        verbose_name="Key"
    )
    value = models.JSONField(
        default=dict,
        verbose_name="Value"
    )
    description = models.TextField(
        blank=True,
        verbose_name="Description"
    )

    # Metadata
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated at"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name="Updated by"
    )

    class Meta:
        db_table = 'system_settings'
        verbose_name = 'System setting'
        verbose_name_plural = 'System settings'
        ordering = ['key']

    def __str__(self):
        return self.key

    @classmethod
    def get_value(cls, key, default=None):
        setting = cls.objects.filter(key=key).first()
        if setting is None:
            return default
        return setting.value

"""
Application Services.

Workflows that span several documents. Each public function runs inside
a database transaction, writes the audit trail and fans out notifications.
Views and Celery tasks call these; models only know their own transitions.
"""

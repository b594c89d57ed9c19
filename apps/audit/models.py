from django.db import models
import uuid


class EntityType(models.TextChoices):
    SHIPMENT = 'SHIPMENT', 'Shipment'
    PAYMENT = 'PAYMENT', 'Payment'
    EXCHANGE_RATE = 'EXCHANGE_RATE', 'Exchange Rate'
    USER = 'USER', 'User'


class ActionType(models.TextChoices):
    CREATE = 'CREATE', 'Create'
    UPDATE = 'UPDATE', 'Update'
    DELETE = 'DELETE', 'Delete'
    STATUS_CHANGE = 'STATUS_CHANGE', 'Status Change'


class AuditLog(models.Model):
    """Append-only record of a change made to a ledger entity."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    entity_type = models.CharField(max_length=30, choices=EntityType.choices)
    entity_id = models.CharField(max_length=64)
    action_type = models.CharField(max_length=30, choices=ActionType.choices)
    timestamp = models.DateTimeField(auto_now_add=True)
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'audit_logs'
        indexes = [
            models.Index(fields=['entity_type', 'entity_id'], name='audit_entity_idx'),
            models.Index(fields=['timestamp'], name='audit_timestamp_idx'),
        ]
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.action_type} {self.entity_type}#{self.entity_id}"

"""
Workflow audit rows — accepted actions and generated labels.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from bondman.models.enums import EventAxis


class WorkflowEvent(models.Model):
    """One accepted workflow action on a preshipment. Append-only."""

    preshipment = models.ForeignKey(
        'bondman.Preshipment',
        on_delete=models.CASCADE,
        related_name='events',
    )
    axis = models.CharField(max_length=10, choices=EventAxis.choices)
    action = models.CharField(max_length=32)
    from_state = models.CharField(max_length=20, blank=True, default='')
    to_state = models.CharField(max_length=20, blank=True, default='')
    payload = models.JSONField(default=dict, blank=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = _('Workflow event')
        verbose_name_plural = _('Workflow events')
        ordering = ['created_at', 'id']

    def __str__(self) -> str:
        return f"{self.action}: {self.from_state or '-'} → {self.to_state or '-'}"


class ShippingLabel(models.Model):
    """Label data generated for a preshipment. Rendering happens elsewhere."""

    preshipment = models.ForeignKey(
        'bondman.Preshipment',
        on_delete=models.CASCADE,
        related_name='labels',
    )
    carrier = models.CharField(max_length=50)
    service_type = models.CharField(max_length=30)
    tracking_number = models.CharField(max_length=100, db_index=True)
    label_format = models.CharField(max_length=10, default='PDF')
    data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _('Shipping label')
        verbose_name_plural = _('Shipping labels')
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"{self.carrier} {self.tracking_number}"

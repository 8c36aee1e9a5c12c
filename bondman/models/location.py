"""
StorageLocation model — Where lots sit inside the zone.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from bondman.models.enums import LocationKind


class StorageLocation(models.Model):
    """
    Where a lot is stored — rack, dock door, yard slot.

    Locations are stable entities, created during warehouse setup.
    Flat structure, no hierarchy.

    Examples:
        StorageLocation.objects.create(code='a-01-03', name='Rack A-01-03')
        StorageLocation.objects.create(code='dock-2', name='Dock 2')
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_('Code'),
        help_text=_('Unique identifier (e.g. a-01-03, dock-2)'),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_('Name'),
    )
    kind = models.CharField(
        max_length=20,
        choices=LocationKind.choices,
        default=LocationKind.PHYSICAL,
        verbose_name=_('Kind'),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Active'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadata'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Storage location')
        verbose_name_plural = _('Storage locations')
        ordering = ['code']

    def __str__(self) -> str:
        return self.name

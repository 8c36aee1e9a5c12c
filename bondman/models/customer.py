"""
Customer model — Owner of lots and consignee on shipping labels.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Customer(models.Model):

    code = models.CharField(
        max_length=32,
        unique=True,
        verbose_name=_('Code'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Name'))

    # Ship-to block used on labels
    address = models.CharField(max_length=255, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')
    state = models.CharField(max_length=50, blank=True, default='')
    zip_code = models.CharField(max_length=20, blank=True, default='')
    country = models.CharField(max_length=2, default='US')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _('Customer')
        verbose_name_plural = _('Customers')
        ordering = ['name']

    def __str__(self) -> str:
        return self.name

    def ship_to(self) -> dict[str, str]:
        """Address block for shipping labels."""
        return {
            'company': self.name,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zip': self.zip_code,
            'country': self.country,
        }

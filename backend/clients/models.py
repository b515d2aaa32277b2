from datetime import date

from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext as _
from backend.core.models import Business


def validate_fiscal_year_end(value):
    """Accept "MM-DD" strings naming a real calendar day (02-29 included)"""
    if not value:
        return
    try:
        month, day = value.split('-')
        if len(month) != 2 or len(day) != 2:
            raise ValueError(value)
        # 2000 is a leap year, so 02-29 is accepted
        date(2000, int(month), int(day))
    except ValueError:
        raise ValidationError(_('Fiscal year end must be a valid month and day in MM-DD format.'))


class Client(models.Model):
    """Client (customer company) of the business"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='clients')
    name = models.CharField(max_length=200)
    industry = models.CharField(max_length=100, blank=True)
    address = models.TextField(blank=True)
    contact_person = models.CharField(max_length=200, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    fiscal_year_end = models.CharField(max_length=5, blank=True, validators=[validate_fiscal_year_end])
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'clients'
        ordering = ['name']
        indexes = [
            models.Index(fields=['business', 'status'], name='idx_client_business_status'),
        ]

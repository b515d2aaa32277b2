from django.contrib import admin
from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'business', 'industry', 'contact_person', 'status', 'fiscal_year_end', 'created_at']
    list_filter = ['status', 'industry', 'created_at']
    search_fields = ['name', 'contact_person', 'email', 'business__name']
    ordering = ['name']

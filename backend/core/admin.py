from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import Business, User, Invitation, AuditLog


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ['name', 'business_code', 'owner', 'created_at']
    search_fields = ['name', 'business_code']
    ordering = ['-created_at']
    readonly_fields = ['business_code', 'created_at', 'updated_at']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'username', 'business', 'role', 'is_active', 'is_staff', 'date_joined']
    list_filter = ['role', 'is_active', 'is_staff', 'is_superuser', 'date_joined']
    search_fields = ['username', 'email', 'business__name', 'business__business_code']
    ordering = ['email']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Business', {'fields': ('business', 'role')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'username', 'password1', 'password2', 'business', 'role'),
        }),
    )


@admin.register(Invitation)
class InvitationAdmin(admin.ModelAdmin):
    list_display = ['invitation_code', 'email', 'role', 'business', 'used', 'expires_at', 'created_at']
    list_filter = ['used', 'role', 'created_at']
    search_fields = ['invitation_code', 'email', 'business__name']
    ordering = ['-created_at']
    readonly_fields = ['invitation_code', 'created_at', 'updated_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['business', 'user', 'action', 'model_name', 'object_id', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__email', 'model_name', 'object_id', 'object_name']
    ordering = ['-created_at']
    readonly_fields = ['business', 'user', 'action', 'model_name', 'object_id', 'object_name',
                       'changes', 'ip_address', 'created_at']

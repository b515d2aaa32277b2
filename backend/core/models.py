import secrets
import string
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager as BaseUserManager
from django.db import models
from django.utils import timezone

CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_code(prefix, length):
    """Prefix followed by `length` random uppercase alphanumerics"""
    return prefix + ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def generate_business_code():
    return generate_code('B', 6)


def generate_invitation_code():
    return generate_code('INV', 8)


class Roles:
    ADMIN = 'admin'
    MANAGER = 'manager'
    USER = 'user'

    CHOICES = [
        (ADMIN, 'Admin'),
        (MANAGER, 'Manager'),
        (USER, 'User'),
    ]
    MANAGEMENT = (ADMIN, MANAGER)


class Business(models.Model):
    """Tenant: an organization owning users and workspace data"""
    name = models.CharField(max_length=200)
    business_code = models.CharField(max_length=20, unique=True, blank=True)
    # Nullable only while the first admin is being created in the same transaction
    owner = models.OneToOneField(
        'core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='owned_business'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.business_code})"

    def save(self, *args, **kwargs):
        if not self.business_code:
            self.business_code = self._unique_code()
        super().save(*args, **kwargs)

    @classmethod
    def _unique_code(cls):
        code = generate_business_code()
        while cls.objects.filter(business_code=code).exists():
            code = generate_business_code()
        return code

    class Meta:
        db_table = 'businesses'
        verbose_name_plural = 'businesses'


class UserManager(BaseUserManager):
    """Email is the login identifier; username is a display name"""

    def _create_user(self, username, email, password, **extra_fields):
        if not email:
            raise ValueError('The email address must be set')
        email = self.normalize_email(email)
        user = self.model(username=username, email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, username=None, email=None, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        if not username and email:
            username = email.split('@')[0]
        return self._create_user(username, email, password, **extra_fields)

    def create_superuser(self, username=None, email=None, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', Roles.ADMIN)
        if not username and email:
            username = email.split('@')[0]
        return self._create_user(username, email, password, **extra_fields)


class User(AbstractUser):
    """Tenant member with a role inside their business"""
    username = models.CharField(max_length=150)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Roles.CHOICES, default=Roles.USER)
    # Null only for platform staff created through createsuperuser
    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, null=True, blank=True, related_name='users'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    objects = UserManager()

    def __str__(self):
        return f"{self.username} <{self.email}>"

    @property
    def is_business_admin(self):
        return self.role == Roles.ADMIN

    @property
    def is_business_manager(self):
        return self.role in Roles.MANAGEMENT

    @property
    def is_business_owner(self):
        return self.business_id is not None and self.business.owner_id == self.pk

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['business', 'role'], name='idx_user_business_role'),
        ]


def default_invitation_expiry():
    return timezone.now() + timedelta(days=settings.SPHERE_INVITATION_DAYS)


class Invitation(models.Model):
    """Single-use, time-boxed invitation binding an email to a role"""
    invitation_code = models.CharField(max_length=20, unique=True, blank=True)
    email = models.EmailField()
    role = models.CharField(max_length=20, choices=Roles.CHOICES, default=Roles.USER)
    used = models.BooleanField(default=False)
    expires_at = models.DateTimeField(null=True, blank=True, default=default_invitation_expiry)
    business = models.ForeignKey(Business, on_delete=models.CASCADE, related_name='invitations')
    invited_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sent_invitations'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.invitation_code} -> {self.email}"

    def save(self, *args, **kwargs):
        if not self.invitation_code:
            code = generate_invitation_code()
            while Invitation.objects.filter(invitation_code=code).exists():
                code = generate_invitation_code()
            self.invitation_code = code
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return self.expires_at is not None and timezone.now() > self.expires_at

    def is_valid(self):
        """Unused and not past its expiry (a null expiry never expires)"""
        return not self.used and not self.is_expired

    def matches_email(self, email):
        return bool(email) and self.email.lower() == email.strip().lower()

    def is_redeemable_by(self, email):
        return self.is_valid() and self.matches_email(email)

    class Meta:
        db_table = 'invitations'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['business', 'email'], name='idx_invitation_business_email'),
            models.Index(fields=['used', 'expires_at'], name='idx_invitation_used_expires'),
        ]


class AuditLog(models.Model):
    """Audit log for security-relevant and destructive operations"""
    ACTION_CHOICES = [
        ('business_create', 'Business Created'),
        ('business_update', 'Business Updated'),
        ('signup', 'Signed Up'),
        ('login', 'Logged In'),
        ('invite', 'Invitation Issued'),
        ('invite_revoke', 'Invitation Revoked'),
        ('role_change', 'Role Changed'),
        ('user_remove', 'User Removed'),
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('task_move', 'Task Moved'),
        ('wiki_restore', 'Wiki Version Restored'),
    ]

    business = models.ForeignKey(Business, on_delete=models.CASCADE, null=True, blank=True, related_name='audit_logs')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., task title, user email)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['model_name'], name='idx_audit_model'),
        ]

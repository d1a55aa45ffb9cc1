from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models
from django.utils import timezone

from . import roles


class SoftDeleteQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def dead(self):
        return self.filter(deleted_at__isnull=False)


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    """Default manager hiding soft-deleted rows"""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class AllObjectsManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    pass


class TrackingModel(models.Model):
    """Abstract base with creator/editor tracking and soft delete"""
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    editor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = SoftDeleteManager()
    all_objects = AllObjectsManager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    def soft_delete(self, user=None):
        self.deleted_at = timezone.now()
        if user is not None and user.is_authenticated:
            self.editor = user
        self.save(update_fields=['deleted_at', 'editor', 'updated_at'])

    def restore(self, user=None):
        self.deleted_at = None
        if user is not None and user.is_authenticated:
            self.editor = user
        self.save(update_fields=['deleted_at', 'editor', 'updated_at'])


class ActiveUserManager(UserManager):
    """User manager that hides soft-deleted accounts"""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class User(AbstractUser):
    """Extended user model with role, account status and soft delete"""
    STATUS_ACTIVE = 'ACTIVE'
    STATUS_CHOICES = [
        ('ACTIVE', 'Active'),
        ('INACTIVE', 'Inactive'),
        ('SUSPENDED', 'Suspended'),
        ('PENDING', 'Pending'),
        ('BLOCKED', 'Blocked'),
        ('REJECTED', 'Rejected'),
    ]

    REGISTER_YOURSELF = 'REGISTER_YOURSELF'
    ACCOUNT_ISSUED = 'ACCOUNT_ISSUED'
    ADMIN_ISSUED = 'ADMIN_ISSUED'
    REGISTRATION_TYPE_CHOICES = [
        (REGISTER_YOURSELF, 'Register Yourself'),
        (ACCOUNT_ISSUED, 'Account Issued'),
        (ADMIN_ISSUED, 'Admin Issued'),
    ]

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=30, choices=roles.ROLE_CHOICES, default=roles.CUSTOMER, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    registration_type = models.CharField(max_length=30, choices=REGISTRATION_TYPE_CHOICES, default=REGISTER_YOURSELF)
    is_active = models.BooleanField(default=True)
    creator = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    editor = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = ActiveUserManager()
    all_objects = UserManager()

    class Meta:
        db_table = 'users'

    def save(self, *args, **kwargs):
        if self.username:
            self.username = self.username.strip().lower()
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def can_sign_in(self):
        return self.is_active and self.status == self.STATUS_ACTIVE and self.deleted_at is None


class UserProfile(models.Model):
    """Personal and employment details attached to a user"""
    WORK_SHIFT_CHOICES = [
        ('MORNING', 'Morning'),
        ('AFTERNOON', 'Afternoon'),
        ('EVENING', 'Evening'),
        ('NIGHT', 'Night'),
        ('ROTATING', 'Rotating'),
        ('FULL_DAY', 'Full Day'),
    ]
    POSITION_CHOICES = [
        ('DIRECTOR', 'Director'),
        ('MANAGER', 'Manager'),
        ('TEAM_LEAD', 'Team Lead'),
        ('STAFF', 'Staff'),
        ('INTERN', 'Intern'),
        ('ENGINEER', 'Engineer'),
        ('ACCOUNTANT', 'Accountant'),
        ('HR', 'HR'),
        ('SALE', 'Sale'),
        ('CUSTOMER_SERVICE', 'Customer Service'),
    ]
    EMPLOYMENT_TYPE_CHOICES = [
        ('FULL_TIME', 'Full Time'),
        ('TEMPORARY', 'Temporary'),
        ('PART_TIME', 'Part Time'),
        ('CONTRACT', 'Contract'),
    ]
    GENDER_CHOICES = [
        ('MALE', 'Male'),
        ('FEMALE', 'Female'),
        ('OTHER', 'Other'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')
    full_name = models.CharField(max_length=255, blank=True)
    code = models.CharField(max_length=20, blank=True, db_index=True)
    sub_name = models.CharField(max_length=255, blank=True)
    avatar = models.CharField(max_length=500, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    full_address = models.CharField(max_length=500, blank=True)
    birth_day = models.DateField(null=True, blank=True)
    work_shift = models.CharField(max_length=20, choices=WORK_SHIFT_CHOICES, blank=True, null=True)
    position = models.CharField(max_length=30, choices=POSITION_CHOICES, blank=True, null=True)
    employment_type = models.CharField(max_length=20, choices=EMPLOYMENT_TYPE_CHOICES, blank=True, null=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.full_name or self.user.username

    class Meta:
        db_table = 'user_profiles'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('soft_delete', 'Soft Delete'),
        ('restore', 'Restore'),
        ('password_change', 'Password Change'),
        ('password_reset', 'Password Reset'),
        ('email_change', 'Email Change'),
        ('cart_add', 'Add to Cart'),
        ('cart_update', 'Cart Update'),
        ('cart_remove', 'Remove from Cart'),
        ('cart_clear', 'Cart Cleared'),
        ('voucher_apply', 'Voucher Applied'),
        ('voucher_remove', 'Voucher Removed'),
        ('order_create', 'Order Created'),
        ('order_status', 'Order Status Changed'),
        ('revenue_calculate', 'Revenue Calculated'),
        ('upload', 'File Uploaded'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., product name, order number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., order number, voucher code)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.model_name}#{self.object_id}"

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_idx'),
            models.Index(fields=['action'], name='audit_logs_action_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_reference_idx'),
        ]

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, UserProfile, AuditLog


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    readonly_fields = ['code']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'role', 'status', 'is_active', 'is_staff', 'deleted_at', 'date_joined']
    list_filter = ['role', 'status', 'registration_type', 'is_active', 'is_staff', 'is_superuser']
    search_fields = ['username', 'email', 'profile__full_name', 'profile__code']
    ordering = ['username']
    inlines = [UserProfileInline]
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Account', {'fields': ('role', 'status', 'registration_type', 'deleted_at')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Account', {'fields': ('email', 'role', 'status')}),
    )

    def get_queryset(self, request):
        return User.all_objects.all()


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'action', 'model_name', 'object_id', 'object_reference', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__username', 'model_name', 'object_id', 'object_reference']
    ordering = ['-created_at']
    readonly_fields = ['user', 'action', 'model_name', 'object_id', 'object_name', 'object_reference', 'changes', 'ip_address', 'created_at']

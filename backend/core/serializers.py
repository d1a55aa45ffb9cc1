from django.contrib.auth.password_validation import validate_password
from django.core.validators import RegexValidator
from django.db import transaction
from rest_framework import serializers

from . import roles
from .models import User, UserProfile, AuditLog
from .utils import check_duplicate_by_field
from .validators import Comparison

password_characters = RegexValidator(
    r'^[a-zA-Z0-9!@#$%^&*()_+\-=\[\]{}|;:,.<>?]+$',
    'Password must contain only letters, numbers, or special characters.'
)


def password_field(**kwargs):
    return serializers.CharField(
        write_only=True, min_length=6, max_length=20,
        validators=[password_characters, validate_password], **kwargs
    )


class UserProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = UserProfile
        fields = ['full_name', 'code', 'sub_name', 'avatar', 'phone', 'full_address', 'birth_day',
                  'work_shift', 'position', 'employment_type', 'gender', 'created_at', 'updated_at']
        read_only_fields = ['code', 'created_at', 'updated_at']


class UserSerializer(serializers.ModelSerializer):
    profile = UserProfileSerializer(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'role', 'status', 'registration_type', 'is_active',
                  'is_staff', 'is_superuser', 'profile', 'created_at', 'updated_at', 'deleted_at']
        read_only_fields = fields


class UserRegistrationSerializer(serializers.Serializer):
    """Self sign-up: always creates an active CUSTOMER account"""
    email = serializers.EmailField(max_length=191)
    username = serializers.RegexField(r'^[a-zA-Z0-9_.]{3,30}$', max_length=191,
                                      error_messages={'invalid': 'Username may contain letters, numbers, underscores and periods (3-30 characters).'})
    password = password_field()
    confirm_password = serializers.CharField(write_only=True)
    full_name = serializers.CharField(max_length=191, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)

    class Meta:
        validators = [Comparison('confirm_password', 'password', 'eq', message="Passwords don't match")]

    def validate_email(self, value):
        if check_duplicate_by_field(User, 'email', value, with_deleted=True, case_insensitive=True):
            raise serializers.ValidationError('Email already exists')
        return value.lower()

    def validate_username(self, value):
        if check_duplicate_by_field(User, 'username', value, with_deleted=True, case_insensitive=True):
            raise serializers.ValidationError('Username already exists')
        return value.lower()

    def get_account_defaults(self, validated_data):
        return {
            'role': roles.CUSTOMER,
            'registration_type': User.REGISTER_YOURSELF,
            'status': User.STATUS_ACTIVE,
        }

    def get_profile_defaults(self, validated_data):
        return {
            'full_name': validated_data.get('full_name', ''),
            'phone': validated_data.get('phone', ''),
        }

    @transaction.atomic
    def create(self, validated_data):
        creator = self.context.get('creator')
        user = User(
            username=validated_data['username'],
            email=validated_data['email'],
            is_active=True,
            creator=creator,
            **self.get_account_defaults(validated_data)
        )
        user.set_password(validated_data['password'])
        user.save()
        UserProfile.objects.create(
            user=user,
            code=roles.generate_code(user.role, user.id),
            **self.get_profile_defaults(validated_data)
        )
        return user


class UserCreateSerializer(UserRegistrationSerializer):
    """Accounts issued by management with role and employment details"""
    full_name = serializers.CharField(max_length=191)
    role = serializers.ChoiceField(choices=roles.ROLE_CHOICES, default=roles.CUSTOMER)
    status = serializers.ChoiceField(choices=User.STATUS_CHOICES, default=User.STATUS_ACTIVE)
    work_shift = serializers.ChoiceField(choices=UserProfile.WORK_SHIFT_CHOICES, required=False, allow_null=True)
    position = serializers.ChoiceField(choices=UserProfile.POSITION_CHOICES, required=False, allow_null=True)
    employment_type = serializers.ChoiceField(choices=UserProfile.EMPLOYMENT_TYPE_CHOICES, required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=UserProfile.GENDER_CHOICES, required=False, allow_null=True)
    birth_day = serializers.DateField(required=False, allow_null=True)
    full_address = serializers.CharField(max_length=500, required=False, allow_blank=True)

    def validate_role(self, value):
        creator = self.context.get('creator')
        if value == roles.ADMINISTRATOR and roles.user_role(creator) != roles.ADMINISTRATOR:
            raise serializers.ValidationError('Only administrators can issue administrator accounts')
        return value

    def get_account_defaults(self, validated_data):
        creator = self.context.get('creator')
        registration_type = User.ACCOUNT_ISSUED
        if roles.user_role(creator) == roles.ADMINISTRATOR and validated_data['role'] in roles.MANAGEMENT:
            registration_type = User.ADMIN_ISSUED
        return {
            'role': validated_data['role'],
            'registration_type': registration_type,
            'status': validated_data['status'],
        }

    def get_profile_defaults(self, validated_data):
        defaults = super().get_profile_defaults(validated_data)
        for field in ('work_shift', 'position', 'employment_type', 'gender', 'birth_day', 'full_address'):
            if validated_data.get(field) is not None:
                defaults[field] = validated_data[field]
        return defaults


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Fields a user may edit on their own profile"""

    class Meta:
        model = UserProfile
        fields = ['full_name', 'sub_name', 'avatar', 'phone', 'full_address', 'birth_day', 'gender']


class UserUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=roles.ROLE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=User.STATUS_CHOICES, required=False)
    is_active = serializers.BooleanField(required=False)
    full_name = serializers.CharField(max_length=191, required=False, allow_blank=True)
    sub_name = serializers.CharField(max_length=191, required=False, allow_blank=True)
    avatar = serializers.CharField(max_length=500, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    full_address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    birth_day = serializers.DateField(required=False, allow_null=True)
    work_shift = serializers.ChoiceField(choices=UserProfile.WORK_SHIFT_CHOICES, required=False, allow_null=True)
    position = serializers.ChoiceField(choices=UserProfile.POSITION_CHOICES, required=False, allow_null=True)
    employment_type = serializers.ChoiceField(choices=UserProfile.EMPLOYMENT_TYPE_CHOICES, required=False, allow_null=True)
    gender = serializers.ChoiceField(choices=UserProfile.GENDER_CHOICES, required=False, allow_null=True)

    USER_FIELDS = ('role', 'status', 'is_active')

    def validate_role(self, value):
        editor = self.context.get('editor')
        if value == roles.ADMINISTRATOR and roles.user_role(editor) != roles.ADMINISTRATOR:
            raise serializers.ValidationError('Only administrators can grant the administrator role')
        return value

    @transaction.atomic
    def update(self, instance, validated_data):
        profile, _ = UserProfile.objects.get_or_create(user=instance)
        role_changed = 'role' in validated_data and validated_data['role'] != instance.role

        for field in self.USER_FIELDS:
            if field in validated_data:
                setattr(instance, field, validated_data[field])
        instance.editor = self.context.get('editor')
        instance.save()

        for field, value in validated_data.items():
            if field not in self.USER_FIELDS:
                setattr(profile, field, value)
        if role_changed or not profile.code:
            profile.code = roles.generate_code(instance.role, instance.id)
        profile.save()
        return instance


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = password_field()

    class Meta:
        validators = [Comparison('new_password', 'current_password', 'ne',
                                 message='New password must be different from the current password')]

    def validate_current_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError('Current password is incorrect')
        return value


class ChangeEmailSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True)
    current_email = serializers.EmailField()
    new_email = serializers.EmailField(max_length=191)

    class Meta:
        validators = [Comparison('new_email', 'current_email', 'ne',
                                 message='New email must be different from the current email')]

    def validate(self, attrs):
        attrs = super().validate(attrs)
        user = self.context['request'].user
        if attrs['current_email'].lower() != user.email:
            raise serializers.ValidationError({'current_email': 'Current email does not match'})
        if check_duplicate_by_field(User, 'email', attrs['new_email'], exclude_id=user.id,
                                    with_deleted=True, case_insensitive=True):
            raise serializers.ValidationError({'new_email': 'Email already in use'})
        if not user.check_password(attrs['password']):
            raise serializers.ValidationError({'password': 'Password is incorrect'})
        attrs['new_email'] = attrs['new_email'].lower()
        return attrs


class SetPasswordSerializer(serializers.Serializer):
    new_password = password_field()


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()


class AuditLogSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'username', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']

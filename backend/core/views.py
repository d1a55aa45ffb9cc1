import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.core.mail import send_mail
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from . import roles
from .models import AuditLog, UserProfile
from .permissions import IsAdministrator, IsManagement
from .serializers import (
    UserSerializer, UserRegistrationSerializer, UserCreateSerializer, UserUpdateSerializer,
    ProfileUpdateSerializer, ChangePasswordSerializer, ChangeEmailSerializer,
    SetPasswordSerializer, ForgotPasswordSerializer, LogoutSerializer, AuditLogSerializer
)
from .utils import (
    create_audit_log, paginate_queryset, apply_soft_delete_filter, apply_ordering,
    parse_bool, parse_id_list, generate_random_password
)

User = get_user_model()

logger = logging.getLogger(__name__)

USER_ORDERING_FIELDS = {'id', 'username', 'email', 'role', 'status', 'created_at', 'updated_at'}


def issue_tokens(user):
    token = CustomTokenObtainPairSerializer.get_token(user)
    return {'access': str(token.access_token), 'refresh': str(token)}


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        username = (attrs.get(self.username_field) or '').strip().lower()
        attrs[self.username_field] = username
        # Correct credentials on a disabled account get 403 instead of the generic 401
        candidate = User.objects.filter(username=username).first()
        if candidate and candidate.check_password(attrs.get('password', '')) and not candidate.can_sign_in:
            raise PermissionDenied('User account is not active.')
        return super().validate(attrs)

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = roles.user_role(user)
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = UserRegistrationSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        logger.info(f"User registered: {user.username} (id={user.id})")
        return Response({
            'user': UserSerializer(user).data,
            **issue_tokens(user),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Blacklist the submitted refresh token"""
    serializer = LogoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        RefreshToken(serializer.validated_data['refresh']).blacklist()
    except TokenError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    logger.debug(f"User logged out: {request.user.username}")
    return Response({'message': 'Logged out successfully'})


@api_view(['POST'])
@permission_classes([AllowAny])
def forgot_password(request):
    """Reset the password to a random one and email it to the account owner"""
    serializer = ForgotPasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data['email'].lower()

    user = User.objects.filter(email=email).first()
    if not user:
        return Response({'email': ['No account found with this email']}, status=status.HTTP_400_BAD_REQUEST)
    if not user.can_sign_in:
        return Response({'error': 'User account is not active.'}, status=status.HTTP_403_FORBIDDEN)

    new_password = generate_random_password()
    user.set_password(new_password)
    user.save(update_fields=['password', 'updated_at'])
    create_audit_log(request=request, user=user, action='password_reset', model_name='User',
                     object_id=user.id, object_name=user.username)

    try:
        send_mail(
            subject='Your password has been reset',
            message=f'Hello {user.username},\n\nYour new password is: {new_password}\n'
                    f'Please sign in and change it as soon as possible.',
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
        )
    except Exception as e:
        logger.error(f"Failed to send password reset email to {user.email}: {str(e)}", exc_info=True)

    return Response({'message': 'A new password has been sent to your email'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role flags"""
    user_data = UserSerializer(request.user).data
    user_data['effective_role'] = roles.user_role(request.user)
    user_data['is_management'] = roles.is_management(request.user)
    return Response(user_data)


# User management views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsManagement])
def user_list_create(request):
    """List users with filters or issue a new account"""
    if request.method == 'GET':
        params = request.query_params
        queryset = apply_soft_delete_filter(User, params).select_related('profile')

        search = params.get('search')
        if search:
            queryset = queryset.filter(
                Q(username__icontains=search) |
                Q(email__icontains=search) |
                Q(profile__full_name__icontains=search)
            )
        is_active = parse_bool(params.get('isActive'))
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        role = params.get('role')
        if role:
            queryset = queryset.filter(role=role)
        code = params.get('code')
        if code:
            queryset = queryset.filter(profile__code__iexact=code)
        in_ids = parse_id_list(params, 'inIds')
        if in_ids:
            queryset = queryset.filter(id__in=in_ids)
        not_in_ids = parse_id_list(params, 'notInIds')
        if not_in_ids:
            queryset = queryset.exclude(id__in=not_in_ids)

        queryset = apply_ordering(queryset, params, USER_ORDERING_FIELDS)
        return Response(paginate_queryset(queryset, request, UserSerializer))

    serializer = UserCreateSerializer(data=request.data, context={'creator': request.user})
    if serializer.is_valid():
        user = serializer.save()
        create_audit_log(
            request=request,
            action='create',
            model_name='User',
            object_id=user.id,
            object_name=user.username,
            object_reference=user.profile.code,
            changes={'role': user.role, 'registration_type': user.registration_type}
        )
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsManagement])
def user_detail(request, pk):
    """Retrieve, update or permanently delete a user"""
    if request.method == 'DELETE':
        if not IsAdministrator().has_permission(request, None):
            return Response({'error': 'Only administrators can delete users permanently'}, status=status.HTTP_403_FORBIDDEN)
        user = get_object_or_404(User.all_objects, pk=pk)
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        username = user.username
        user.delete()
        create_audit_log(request=request, action='delete', model_name='User', object_id=pk, object_name=username)
        return Response(status=status.HTTP_204_NO_CONTENT)

    user = get_object_or_404(User.objects.select_related('profile'), pk=pk)
    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    old_data = {'role': user.role, 'status': user.status, 'is_active': user.is_active}
    serializer = UserUpdateSerializer(user, data=request.data, partial=True, context={'editor': request.user})
    if serializer.is_valid():
        serializer.save()
        new_data = {'role': user.role, 'status': user.status, 'is_active': user.is_active}
        changes = {k: {'old': old_data[k], 'new': new_data[k]} for k in old_data if old_data[k] != new_data[k]}
        create_audit_log(
            request=request,
            action='update',
            model_name='User',
            object_id=user.id,
            object_name=user.username,
            object_reference=user.profile.code,
            changes=changes
        )
        return Response(UserSerializer(user).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsManagement])
def user_soft_delete(request, pk):
    user = get_object_or_404(User.objects, pk=pk)
    if user.pk == request.user.pk:
        return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
    if user.role == roles.ADMINISTRATOR and roles.user_role(request.user) != roles.ADMINISTRATOR:
        return Response({'error': 'Only administrators can delete administrator accounts'}, status=status.HTTP_403_FORBIDDEN)
    user.deleted_at = timezone.now()
    user.is_active = False
    user.editor = request.user
    user.save(update_fields=['deleted_at', 'is_active', 'editor', 'updated_at'])
    create_audit_log(request=request, action='soft_delete', model_name='User', object_id=user.id, object_name=user.username)
    return Response({'message': 'User deleted successfully'})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsManagement])
def user_restore(request, pk):
    user = get_object_or_404(User.all_objects, pk=pk, deleted_at__isnull=False)
    user.deleted_at = None
    user.is_active = True
    user.editor = request.user
    user.save(update_fields=['deleted_at', 'is_active', 'editor', 'updated_at'])
    create_audit_log(request=request, action='restore', model_name='User', object_id=user.id, object_name=user.username)
    return Response(UserSerializer(user).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsManagement])
def user_set_password(request, pk):
    """Management sets a new password for an active account"""
    user = get_object_or_404(User.objects, pk=pk)
    if not user.can_sign_in:
        return Response({'error': 'User account is not active.'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = SetPasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user.set_password(serializer.validated_data['new_password'])
    user.editor = request.user
    user.save(update_fields=['password', 'editor', 'updated_at'])
    create_audit_log(request=request, action='password_reset', model_name='User', object_id=user.id, object_name=user.username)
    return Response({'message': 'Password updated successfully'})


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def my_profile(request):
    """Read or update the current user's profile"""
    profile, _ = UserProfile.objects.get_or_create(
        user=request.user,
        defaults={'code': roles.generate_code(request.user.role, request.user.id)}
    )
    if request.method == 'PATCH':
        serializer = ProfileUpdateSerializer(profile, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
    request.user.refresh_from_db()
    return Response(UserSerializer(request.user).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def change_password(request):
    serializer = ChangePasswordSerializer(data=request.data, context={'request': request})
    serializer.is_valid(raise_exception=True)
    user = request.user
    user.set_password(serializer.validated_data['new_password'])
    user.save(update_fields=['password', 'updated_at'])
    create_audit_log(request=request, action='password_change', model_name='User', object_id=user.id, object_name=user.username)
    return Response({'message': 'Password changed successfully'})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def change_email(request):
    user = request.user
    if not user.can_sign_in:
        return Response({'error': 'User account is not active.'}, status=status.HTTP_403_FORBIDDEN)
    serializer = ChangeEmailSerializer(data=request.data, context={'request': request})
    serializer.is_valid(raise_exception=True)
    old_email = user.email
    user.email = serializer.validated_data['new_email']
    user.save(update_fields=['email', 'updated_at'])
    create_audit_log(
        request=request, action='email_change', model_name='User', object_id=user.id,
        object_name=user.username, changes={'email': {'old': old_email, 'new': user.email}}
    )
    return Response(UserSerializer(user).data)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')

    if not roles.is_management(request.user):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at', '-id')
    return Response(paginate_queryset(queryset, request, AuditLogSerializer, paginate_by_default=True))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if not roles.is_management(request.user) and audit_log.user_id != request.user.id:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    return Response(AuditLogSerializer(audit_log).data)

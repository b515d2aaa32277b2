import logging

from django.conf import settings
from django.contrib.auth.models import update_last_login
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils.translation import gettext as _
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework_simplejwt.views import TokenRefreshView

from .models import Business, User, Invitation, AuditLog, Roles
from .permissions import IsBusinessMember, IsBusinessAdmin
from .serializers import (
    BusinessSerializer, UserSerializer, LoginSerializer, BusinessSignupSerializer,
    InvitationSignupSerializer, InvitationCreateSerializer, InvitationSerializer,
    RoleUpdateSerializer, SphereTokenRefreshSerializer, AuditLogSerializer,
    build_auth_payload,
)
from .utils import create_audit_log

logger = logging.getLogger('backend.core')


class AuthRateThrottle(AnonRateThrottle):
    """Limits anonymous login/signup attempts per client IP"""
    scope = 'auth'


class RequestRejected(Exception):
    """Raised inside a transaction to roll it back and answer with `message`"""

    def __init__(self, message, status_code=status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def server_error_response():
    return Response({'error': _('A server error occurred.')}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def email_in_use(email):
    return User.objects.filter(email__iexact=email).exists()


# Auth views
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def login(request):
    """Log in with business code, email and password"""
    serializer = LoginSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        business = Business.objects.filter(business_code=data['business_code'].strip().upper()).first()
        if business is None:
            logger.warning(f"Login rejected: unknown business code {data['business_code']!r}")
            return Response({'error': _('Invalid business code.')}, status=status.HTTP_401_UNAUTHORIZED)

        user = User.objects.filter(email__iexact=data['email'], business=business).first()
        # Same message for unknown email and wrong password
        if user is None or not user.check_password(data['password']):
            logger.warning(f"Login rejected for {data['email']} in business {business.business_code}")
            return Response({'error': _('Invalid email address or password.')}, status=status.HTTP_401_UNAUTHORIZED)

        if not user.is_active:
            return Response({'error': _('User account is disabled.')}, status=status.HTTP_401_UNAUTHORIZED)

        payload = build_auth_payload(user, business)
        if settings.SIMPLE_JWT.get('UPDATE_LAST_LOGIN'):
            update_last_login(None, user)
        logger.info(f"User {user.email} logged in to business {business.business_code}")
        return Response(payload)
    except Exception as e:
        logger.error(f"Login error: {str(e)}", exc_info=True)
        return server_error_response()


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def create_business_with_user(request):
    """Create a new business together with its first (admin) user"""
    serializer = BusinessSignupSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        with transaction.atomic():
            if email_in_use(data['email']):
                raise RequestRejected(_('This email address is already in use.'))

            business = Business.objects.create(name=data['business_name'])
            user = User.objects.create_user(
                username=data['username'],
                email=data['email'],
                password=data['password'],
                role=Roles.ADMIN,
                business=business,
            )
            business.owner = user
            business.save(update_fields=['owner', 'updated_at'])
    except RequestRejected as e:
        logger.warning(f"Business signup rejected for {data['email']}: {e.message}")
        return Response({'error': e.message}, status=e.status_code)
    except IntegrityError:
        logger.warning(f"Business signup hit a unique constraint for {data['email']}", exc_info=True)
        return Response({'error': _('This email address is already in use.')}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Create business error: {str(e)}", exc_info=True)
        return server_error_response()

    logger.info(f"Business {business.business_code} created by {user.email}")
    create_audit_log(
        request=request, user=user, business=business, action='business_create',
        model_name='Business', object_id=business.id, object_name=business.name,
    )
    return Response(build_auth_payload(user, business), status=status.HTTP_201_CREATED)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def signup_with_invitation(request):
    """Redeem an invitation code and create the invited user"""
    serializer = InvitationSignupSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        with transaction.atomic():
            business = Business.objects.filter(business_code=data['business_code'].strip().upper()).first()
            if business is None:
                raise RequestRejected(_('Invalid business code.'))

            invitation = (
                Invitation.objects.select_for_update()
                .filter(invitation_code=data['invitation_code'].strip().upper(), business=business, used=False)
                .first()
            )
            if invitation is None or not invitation.is_valid():
                raise RequestRejected(_('The invitation code is invalid or has expired.'))

            if not invitation.matches_email(data['email']):
                raise RequestRejected(_('The email address does not match the invitation.'))

            if email_in_use(data['email']):
                raise RequestRejected(_('This email address is already in use.'))

            user = User.objects.create_user(
                username=data['username'],
                email=data['email'],
                password=data['password'],
                role=invitation.role,
                business=business,
            )
            invitation.used = True
            invitation.save(update_fields=['used', 'updated_at'])
    except RequestRejected as e:
        logger.warning(f"Invitation signup rejected for {data['email']}: {e.message}")
        return Response({'error': e.message}, status=e.status_code)
    except IntegrityError:
        logger.warning(f"Invitation signup hit a unique constraint for {data['email']}", exc_info=True)
        return Response({'error': _('This email address is already in use.')}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Signup error: {str(e)}", exc_info=True)
        return server_error_response()

    logger.info(f"User {user.email} joined business {business.business_code} as {user.role}")
    create_audit_log(
        request=request, user=user, business=business, action='signup',
        model_name='User', object_id=user.id, object_name=user.email,
        changes={'invitation_code': invitation.invitation_code, 'role': user.role},
    )
    return Response(build_auth_payload(user, business), status=status.HTTP_201_CREATED)


class SphereTokenRefreshView(TokenRefreshView):
    """Token refresh view that handles deleted users gracefully"""
    serializer_class = SphereTokenRefreshSerializer


@api_view(['GET'])
@permission_classes([IsBusinessMember])
def user_me(request):
    """Current user with business and role flags"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['business'] = BusinessSerializer(user.business).data
    user_data['is_admin'] = user.is_business_admin
    user_data['is_manager'] = user.is_business_manager
    user_data['is_owner'] = user.is_business_owner
    return Response(user_data)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def health(request):
    return Response({'status': 'ok', 'environment': settings.SPHERE_ENVIRONMENT})


# Business views
@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsBusinessMember])
def business_info(request):
    """Retrieve the caller's business, or update it (admin only)"""
    business = request.user.business

    if request.method == 'GET':
        return Response(BusinessSerializer(business).data)

    if not request.user.is_business_admin:
        logger.warning(f"User {request.user.email} attempted to update business {business.id} without admin role")
        return Response({'error': _('You do not have permission to perform this action.')},
                        status=status.HTTP_403_FORBIDDEN)

    serializer = BusinessSerializer(business, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        old_name = business.name
        serializer.save()
        logger.info(f"Business {business.id} updated by {request.user.email}")
        create_audit_log(
            request=request, action='business_update', model_name='Business',
            object_id=business.id, object_name=business.name,
            changes={'name': [old_name, business.name]},
        )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# User views
@api_view(['GET'])
@permission_classes([IsBusinessMember])
def user_list(request):
    """List the users of the caller's business"""
    users = User.objects.filter(business_id=request.user.business_id).order_by('created_at')
    return Response(UserSerializer(users, many=True).data)


@api_view(['POST'])
@permission_classes([IsBusinessAdmin])
def invite_user(request):
    """Issue (or reissue) an invitation for an email address"""
    serializer = InvitationCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    email = serializer.validated_data['email']
    role = serializer.validated_data['role']
    business = request.user.business

    try:
        with transaction.atomic():
            if email_in_use(email):
                raise RequestRejected(_('This email address is already in use.'))

            existing = (
                Invitation.objects.select_for_update()
                .filter(business=business, email__iexact=email, used=False)
                .order_by('-created_at')
                .first()
            )
            if existing is not None and existing.is_valid():
                invitation = existing
                invitation.role = role
                invitation.save(update_fields=['role', 'updated_at'])
            else:
                invitation = Invitation.objects.create(
                    email=email, role=role, business=business, invited_by=request.user,
                )
    except RequestRejected as e:
        logger.warning(f"Invitation for {email} rejected: {e.message}")
        return Response({'error': e.message}, status=e.status_code)
    except Exception as e:
        logger.error(f"Invite user error: {str(e)}", exc_info=True)
        return server_error_response()

    logger.info(f"{request.user.email} invited {email} as {role} to business {business.id}")
    create_audit_log(
        request=request, action='invite', model_name='Invitation',
        object_id=invitation.id, object_name=email, changes={'role': role},
    )
    return Response({
        'id': invitation.id,
        'email': invitation.email,
        'role': invitation.role,
        'invitation_code': invitation.invitation_code,
        'expires_at': invitation.expires_at,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsBusinessAdmin])
def invitation_list(request):
    """Pending (unused) invitations of the caller's business"""
    invitations = Invitation.objects.filter(business_id=request.user.business_id, used=False).select_related('invited_by')
    return Response(InvitationSerializer(invitations, many=True).data)


@api_view(['DELETE'])
@permission_classes([IsBusinessAdmin])
def invitation_revoke(request, pk):
    """Revoke a pending invitation"""
    invitation = get_object_or_404(Invitation, pk=pk, business_id=request.user.business_id, used=False)
    create_audit_log(
        request=request, action='invite_revoke', model_name='Invitation',
        object_id=invitation.id, object_name=invitation.email,
    )
    invitation.delete()
    logger.info(f"Invitation {pk} revoked by {request.user.email}")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsBusinessAdmin])
def update_user_role(request, pk):
    """Change the role of a user in the caller's business"""
    target = get_object_or_404(User, pk=pk, business_id=request.user.business_id)

    if target.is_business_owner:
        logger.warning(f"{request.user.email} attempted to change the owner's role in business {target.business_id}")
        return Response({'error': _("The business owner's role cannot be changed.")},
                        status=status.HTTP_403_FORBIDDEN)

    serializer = RoleUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    old_role = target.role
    target.role = serializer.validated_data['role']
    target.save(update_fields=['role', 'updated_at'])
    logger.info(f"{request.user.email} changed role of {target.email}: {old_role} -> {target.role}")
    create_audit_log(
        request=request, action='role_change', model_name='User',
        object_id=target.id, object_name=target.email, changes={'role': [old_role, target.role]},
    )
    return Response(UserSerializer(target).data)


@api_view(['DELETE'])
@permission_classes([IsBusinessAdmin])
def remove_user(request, pk):
    """Remove a user from the caller's business"""
    target = get_object_or_404(User, pk=pk, business_id=request.user.business_id)

    if target.pk == request.user.pk:
        return Response({'error': _('You cannot remove yourself.')}, status=status.HTTP_403_FORBIDDEN)

    if target.is_business_owner:
        return Response({'error': _('The business owner cannot be removed.')}, status=status.HTTP_403_FORBIDDEN)

    create_audit_log(
        request=request, action='user_remove', model_name='User',
        object_id=target.id, object_name=target.email,
    )
    target.delete()
    logger.info(f"{request.user.email} removed user {pk} from business {request.user.business_id}")
    return Response({'message': _('The user has been removed.')})


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsBusinessAdmin])
def audit_log_list(request):
    """List audit logs of the caller's business with filtering"""
    queryset = AuditLog.objects.filter(business_id=request.user.business_id).select_related('user')

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

    queryset = queryset.order_by('-created_at')[:500]
    return Response(AuditLogSerializer(queryset, many=True).data)

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from .models import Business, User, Invitation, AuditLog, Roles


class BusinessRefreshToken(RefreshToken):
    """Refresh token carrying the tenant identity; access tokens copy these claims"""

    @classmethod
    def for_user(cls, user):
        token = super().for_user(user)
        token['email'] = user.email
        token['business_id'] = user.business_id
        token['role'] = user.role
        return token


def build_auth_payload(user, business):
    """Response body shared by login and both signup flows"""
    refresh = BusinessRefreshToken.for_user(user)
    return {
        'token': str(refresh.access_token),
        'refresh': str(refresh),
        'user': {
            'id': user.id,
            'email': user.email,
            'username': user.username,
            'business_id': business.id,
            'role': user.role,
        },
        'business': BusinessSerializer(business).data,
    }


class BusinessSerializer(serializers.ModelSerializer):
    class Meta:
        model = Business
        fields = ['id', 'name', 'business_code', 'created_at']
        read_only_fields = ['business_code', 'created_at']


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'role', 'created_at', 'updated_at']
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    business_code = serializers.CharField(max_length=20)


class BusinessSignupSerializer(serializers.Serializer):
    business_name = serializers.CharField(max_length=200)
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, validators=[validate_password])


class InvitationSignupSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, validators=[validate_password])
    business_code = serializers.CharField(max_length=20)
    invitation_code = serializers.CharField(max_length=20)


class InvitationCreateSerializer(serializers.Serializer):
    email = serializers.EmailField()
    role = serializers.ChoiceField(choices=Roles.CHOICES, default=Roles.USER)


class InvitationSerializer(serializers.ModelSerializer):
    invited_by = serializers.CharField(source='invited_by.username', read_only=True, default=None)

    class Meta:
        model = Invitation
        fields = ['id', 'email', 'role', 'invitation_code', 'expires_at', 'used', 'invited_by', 'created_at']
        read_only_fields = fields


class RoleUpdateSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Roles.CHOICES)


class SphereTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that handles deleted users gracefully"""

    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except User.DoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']

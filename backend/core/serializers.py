from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken
from django.contrib.auth.password_validation import validate_password
from .models import User, AuthProvider


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'name', 'image', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']


class MeSerializer(UserSerializer):
    roles = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['email', 'roles']

    def get_roles(self, obj):
        return list(getattr(obj, 'roles', []))


class AuthProviderSerializer(serializers.ModelSerializer):
    id = serializers.CharField(source='user_id', read_only=True)

    class Meta:
        model = AuthProvider
        fields = ['id', 'type', 'provider_account_id', 'created_at', 'updated_at']


class RegisterWithCredentialsSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, validators=[validate_password])
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    image = serializers.URLField(max_length=1000, required=False, allow_blank=True)

    def validate_email(self, value):
        value = User.objects.normalize_email(value)
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('User already exists with this email.')
        return value

    def create(self, validated_data):
        user = User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            name=validated_data.get('name') or None,
            image=validated_data.get('image') or None,
        )
        AuthProvider.objects.create(user=user, type=AuthProvider.CREDENTIALS)
        return user


class RegisterWithProviderSerializer(serializers.Serializer):
    id = serializers.CharField(max_length=255)
    name = serializers.CharField(max_length=255)
    image = serializers.URLField(max_length=1000, required=False, allow_blank=True)
    type = serializers.ChoiceField(choices=AuthProvider.TYPE_CHOICES)
    provider_account_id = serializers.CharField(max_length=255)

    def validate_id(self, value):
        if User.objects.filter(pk=value).exists():
            raise serializers.ValidationError('User already exists with this id.')
        return value

    def create(self, validated_data):
        user = User.objects.create_user(
            id=validated_data['id'],
            name=validated_data['name'],
            image=validated_data.get('image') or None,
        )
        AuthProvider.objects.create(
            user=user,
            type=validated_data['type'],
            provider_account_id=validated_data['provider_account_id'],
        )
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that rejects tokens of deleted users"""

    def validate(self, attrs):
        try:
            refresh = RefreshToken(attrs['refresh'])
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')

        user_id = refresh.get(api_settings.USER_ID_CLAIM)
        if not user_id or not User.objects.filter(pk=user_id, is_active=True).exists():
            raise InvalidToken('Token is invalid. User no longer exists.')

        try:
            return super().validate(attrs)
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')

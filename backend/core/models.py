import uuid

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models


def generate_user_id():
    return str(uuid.uuid4())


class UserManager(BaseUserManager):
    """Manager for users identified by a string id, optionally holding email credentials"""

    use_in_migrations = True

    def create_user(self, email=None, password=None, id=None, **extra_fields):
        if email:
            email = self.normalize_email(email)
        user = self.model(id=id or generate_user_id(), email=email or None, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        return self.create_user(email=email, password=password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Marketplace user.

    The id is a string so accounts created by an external auth provider keep
    the provider-side uid; credential accounts get a generated UUID.
    Email and password are only set for credential accounts.
    """
    id = models.CharField(primary_key=True, max_length=255, default=generate_user_id, editable=False)
    name = models.CharField(max_length=255, blank=True, null=True)
    image = models.URLField(max_length=1000, blank=True, null=True)
    email = models.EmailField(unique=True, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    EMAIL_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    def __str__(self):
        return self.name or self.email or self.id

    class Meta:
        db_table = 'users'
        ordering = ['created_at']


class AuthProvider(models.Model):
    """How a user signs in"""
    GOOGLE = 'GOOGLE'
    CREDENTIALS = 'CREDENTIALS'
    TYPE_CHOICES = [
        (GOOGLE, 'Google'),
        (CREDENTIALS, 'Credentials'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, related_name='auth_provider')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    provider_account_id = models.CharField(max_length=255, blank=True, null=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user_id} ({self.type})"

    class Meta:
        db_table = 'auth_providers'

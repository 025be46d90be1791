from django.db import models
from backend.core.models import User


class Company(models.Model):
    """A parking operator; managers and valets work for exactly one company"""
    display_name = models.CharField(max_length=255, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name or f"Company-{self.pk}"

    class Meta:
        db_table = 'companies'
        ordering = ['created_at']
        verbose_name_plural = 'companies'


# Role tables: a row keyed by a user id grants that user the role.

class Admin(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, db_column='id', related_name='admin')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return str(self.user)

    class Meta:
        db_table = 'admins'
        ordering = ['created_at']


class Manager(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, db_column='id', related_name='manager')
    display_name = models.CharField(max_length=255, blank=True, null=True)
    company = models.ForeignKey(Company, on_delete=models.SET_NULL, null=True, blank=True, related_name='managers')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name or str(self.user)

    class Meta:
        db_table = 'managers'
        ordering = ['created_at']


class Valet(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, db_column='id', related_name='valet')
    display_name = models.CharField(max_length=255)
    image = models.URLField(max_length=1000, blank=True, null=True)
    licence_id = models.CharField(max_length=100, default='')
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='valets')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name

    class Meta:
        db_table = 'valets'
        ordering = ['created_at']


class Customer(models.Model):
    """Customers are created on first booking or review"""
    user = models.OneToOneField(User, on_delete=models.CASCADE, primary_key=True, db_column='id', related_name='customer')
    display_name = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name or str(self.user)

    class Meta:
        db_table = 'customers'
        ordering = ['created_at']

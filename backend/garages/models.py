from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from decimal import Decimal
from backend.parties.models import Company, Admin, Customer


class Garage(models.Model):
    """A parking facility operated by a company"""
    display_name = models.CharField(max_length=255, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    images = models.JSONField(default=list, blank=True)
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name='garages')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name or f"Garage-{self.pk}"

    @property
    def is_verified(self):
        verification = getattr(self, 'verification', None)
        return bool(verification and verification.verified)

    class Meta:
        db_table = 'garages'
        ordering = ['-created_at']


class Address(models.Model):
    garage = models.OneToOneField(Garage, on_delete=models.CASCADE, related_name='address')
    address = models.TextField()
    lat = models.FloatField(validators=[MinValueValidator(-90), MaxValueValidator(90)])
    lng = models.FloatField(validators=[MinValueValidator(-180), MaxValueValidator(180)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.address

    class Meta:
        db_table = 'addresses'
        verbose_name_plural = 'addresses'
        indexes = [
            models.Index(fields=['lat', 'lng'], name='addresses_lat_lng_idx'),
        ]


class Slot(models.Model):
    """A single parking space of a garage"""
    CAR = 'CAR'
    HEAVY = 'HEAVY'
    BIKE = 'BIKE'
    BICYCLE = 'BICYCLE'
    TYPE_CHOICES = [
        (CAR, 'Car'),
        (HEAVY, 'Heavy'),
        (BIKE, 'Bike'),
        (BICYCLE, 'Bicycle'),
    ]

    display_name = models.CharField(max_length=255, blank=True, null=True)
    price_per_hour = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    length = models.PositiveIntegerField(blank=True, null=True, help_text="Centimetres")
    width = models.PositiveIntegerField(blank=True, null=True, help_text="Centimetres")
    height = models.PositiveIntegerField(blank=True, null=True, help_text="Centimetres")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=CAR)
    garage = models.ForeignKey(Garage, on_delete=models.CASCADE, related_name='slots')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.display_name or f"{self.garage} / {self.type}-{self.pk}"

    class Meta:
        db_table = 'slots'
        ordering = ['garage_id', 'type', 'id']
        indexes = [
            models.Index(fields=['garage', 'type'], name='slots_garage_type_idx'),
        ]


class Verification(models.Model):
    """Admin approval of a garage; only verified garages show up in search"""
    garage = models.OneToOneField(Garage, on_delete=models.CASCADE, primary_key=True, related_name='verification')
    admin = models.ForeignKey(Admin, on_delete=models.SET_NULL, null=True, blank=True, related_name='verifications')
    verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.garage} ({'verified' if self.verified else 'unverified'})"

    class Meta:
        db_table = 'verifications'
        ordering = ['-updated_at']


class Review(models.Model):
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(blank=True, null=True)
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='reviews')
    garage = models.ForeignKey(Garage, on_delete=models.CASCADE, related_name='reviews')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.garage} - {self.rating}"

    class Meta:
        db_table = 'reviews'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['customer', 'garage'], name='unique_review_per_customer_garage'),
        ]

from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from backend.parties.models import Customer, Manager, Valet
from backend.garages.models import Slot


class BookingStatus(models.TextChoices):
    """Lifecycle of a booking, in the order it is walked through"""
    BOOKED = 'BOOKED', 'Booked'
    VALET_ASSIGNED_FOR_CHECK_IN = 'VALET_ASSIGNED_FOR_CHECK_IN', 'Valet assigned for check in'
    VALET_PICKED_UP = 'VALET_PICKED_UP', 'Valet picked up'
    CHECKED_IN = 'CHECKED_IN', 'Checked in'
    VALET_ASSIGNED_FOR_CHECK_OUT = 'VALET_ASSIGNED_FOR_CHECK_OUT', 'Valet assigned for check out'
    CHECKED_OUT = 'CHECKED_OUT', 'Checked out'
    VALET_RETURNED = 'VALET_RETURNED', 'Valet returned'

    @classmethod
    def rank(cls, value):
        return cls.values.index(value)


# A booking in one of these states no longer holds its slot
RELEASED_STATUSES = (BookingStatus.CHECKED_OUT, BookingStatus.VALET_RETURNED)


class BookingQuerySet(models.QuerySet):
    def holding_slot(self):
        return self.exclude(status__in=RELEASED_STATUSES)

    def overlapping(self, start_time, end_time):
        """Bookings whose [start, end) window intersects [start_time, end_time)"""
        return self.filter(start_time__lt=end_time, end_time__gt=start_time)


class Booking(models.Model):
    price_per_hour = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    total_price = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    vehicle_number = models.CharField(max_length=50)
    phone_number = models.CharField(max_length=20, blank=True, null=True)
    passcode = models.CharField(max_length=10)
    status = models.CharField(max_length=40, choices=BookingStatus.choices, default=BookingStatus.BOOKED)
    slot = models.ForeignKey(Slot, on_delete=models.CASCADE, related_name='bookings')
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='bookings')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    def __str__(self):
        return f"Booking-{self.pk} ({self.vehicle_number})"

    class Meta:
        db_table = 'bookings'
        ordering = ['-start_time']
        indexes = [
            models.Index(fields=['slot', 'start_time', 'end_time'], name='bookings_slot_window_idx'),
            models.Index(fields=['status'], name='bookings_status_idx'),
        ]


class ValetAssignment(models.Model):
    """Pickup and drop points of a booking and the valets driving them"""
    booking = models.OneToOneField(Booking, on_delete=models.CASCADE, primary_key=True, related_name='valet_assignment')
    pickup_lat = models.FloatField(blank=True, null=True)
    pickup_lng = models.FloatField(blank=True, null=True)
    return_lat = models.FloatField(blank=True, null=True)
    return_lng = models.FloatField(blank=True, null=True)
    pickup_valet = models.ForeignKey(
        Valet, on_delete=models.SET_NULL, blank=True, null=True, related_name='pickup_assignments'
    )
    return_valet = models.ForeignKey(
        Valet, on_delete=models.SET_NULL, blank=True, null=True, related_name='return_assignments'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Valet assignment for {self.booking}"

    @property
    def has_pickup(self):
        return self.pickup_lat is not None and self.pickup_lng is not None

    @property
    def has_return(self):
        return self.return_lat is not None and self.return_lng is not None

    class Meta:
        db_table = 'valet_assignments'


class BookingTimeline(models.Model):
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='timelines')
    status = models.CharField(max_length=40, choices=BookingStatus.choices)
    timestamp = models.DateTimeField(auto_now_add=True)
    valet = models.ForeignKey(Valet, on_delete=models.SET_NULL, blank=True, null=True, related_name='timelines')
    manager = models.ForeignKey(Manager, on_delete=models.SET_NULL, blank=True, null=True, related_name='timelines')

    def __str__(self):
        return f"{self.booking} -> {self.status}"

    class Meta:
        db_table = 'booking_timelines'
        ordering = ['timestamp', 'id']

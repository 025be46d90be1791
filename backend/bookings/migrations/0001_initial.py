import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models

STATUS_CHOICES = [
    ("BOOKED", "Booked"),
    ("VALET_ASSIGNED_FOR_CHECK_IN", "Valet assigned for check in"),
    ("VALET_PICKED_UP", "Valet picked up"),
    ("CHECKED_IN", "Checked in"),
    ("VALET_ASSIGNED_FOR_CHECK_OUT", "Valet assigned for check out"),
    ("CHECKED_OUT", "Checked out"),
    ("VALET_RETURNED", "Valet returned"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("parties", "0001_initial"),
        ("garages", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "price_per_hour",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                (
                    "total_price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("start_time", models.DateTimeField()),
                ("end_time", models.DateTimeField()),
                ("vehicle_number", models.CharField(max_length=50)),
                ("phone_number", models.CharField(blank=True, max_length=20, null=True)),
                ("passcode", models.CharField(max_length=10)),
                ("status", models.CharField(choices=STATUS_CHOICES, default="BOOKED", max_length=40)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to="parties.customer",
                    ),
                ),
                (
                    "slot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bookings",
                        to="garages.slot",
                    ),
                ),
            ],
            options={
                "db_table": "bookings",
                "ordering": ["-start_time"],
                "indexes": [
                    models.Index(fields=["slot", "start_time", "end_time"], name="bookings_slot_window_idx"),
                    models.Index(fields=["status"], name="bookings_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ValetAssignment",
            fields=[
                (
                    "booking",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        primary_key=True,
                        related_name="valet_assignment",
                        serialize=False,
                        to="bookings.booking",
                    ),
                ),
                ("pickup_lat", models.FloatField(blank=True, null=True)),
                ("pickup_lng", models.FloatField(blank=True, null=True)),
                ("return_lat", models.FloatField(blank=True, null=True)),
                ("return_lng", models.FloatField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "pickup_valet",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="pickup_assignments",
                        to="parties.valet",
                    ),
                ),
                (
                    "return_valet",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="return_assignments",
                        to="parties.valet",
                    ),
                ),
            ],
            options={
                "db_table": "valet_assignments",
            },
        ),
        migrations.CreateModel(
            name="BookingTimeline",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=40)),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="timelines",
                        to="bookings.booking",
                    ),
                ),
                (
                    "manager",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="timelines",
                        to="parties.manager",
                    ),
                ),
                (
                    "valet",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="timelines",
                        to="parties.valet",
                    ),
                ),
            ],
            options={
                "db_table": "booking_timelines",
                "ordering": ["timestamp", "id"],
            },
        ),
    ]

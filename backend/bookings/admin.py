from django.contrib import admin
from .models import Booking, ValetAssignment, BookingTimeline


class ValetAssignmentInline(admin.StackedInline):
    model = ValetAssignment
    can_delete = False


class BookingTimelineInline(admin.TabularInline):
    model = BookingTimeline
    extra = 0
    readonly_fields = ['status', 'timestamp', 'valet', 'manager']


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'vehicle_number', 'slot', 'customer', 'status', 'start_time', 'end_time', 'total_price']
    list_filter = ['status', 'slot__garage']
    search_fields = ['vehicle_number', 'phone_number', 'customer__display_name']
    ordering = ['-start_time']
    inlines = [ValetAssignmentInline, BookingTimelineInline]


@admin.register(ValetAssignment)
class ValetAssignmentAdmin(admin.ModelAdmin):
    list_display = ['booking', 'has_pickup', 'pickup_valet', 'has_return', 'return_valet', 'updated_at']
    search_fields = ['booking__vehicle_number']

    @admin.display(boolean=True)
    def has_pickup(self, obj):
        return obj.has_pickup

    @admin.display(boolean=True)
    def has_return(self, obj):
        return obj.has_return

from django.utils import timezone
from rest_framework import serializers
from backend.garages.models import Slot
from backend.garages.serializers import LatLngSerializer, TimeWindowSerializer
from .models import Booking, BookingStatus, BookingTimeline, ValetAssignment


class ValetAssignmentSerializer(serializers.ModelSerializer):
    booking = serializers.PrimaryKeyRelatedField(read_only=True)
    pickup_valet_name = serializers.CharField(source='pickup_valet.display_name', read_only=True, default=None)
    return_valet_name = serializers.CharField(source='return_valet.display_name', read_only=True, default=None)

    class Meta:
        model = ValetAssignment
        fields = ['booking', 'pickup_lat', 'pickup_lng', 'return_lat', 'return_lng',
                  'pickup_valet', 'pickup_valet_name', 'return_valet', 'return_valet_name',
                  'created_at', 'updated_at']
        read_only_fields = ['pickup_valet', 'return_valet']


class BookingTimelineSerializer(serializers.ModelSerializer):
    class Meta:
        model = BookingTimeline
        fields = ['id', 'booking', 'status', 'timestamp', 'valet', 'manager']


class BookingSerializer(serializers.ModelSerializer):
    garage = serializers.IntegerField(source='slot.garage_id', read_only=True)
    garage_name = serializers.CharField(source='slot.garage.display_name', read_only=True)
    slot_type = serializers.CharField(source='slot.type', read_only=True)
    valet_assignment = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = ['id', 'price_per_hour', 'total_price', 'start_time', 'end_time', 'vehicle_number',
                  'phone_number', 'passcode', 'status', 'slot', 'slot_type', 'garage', 'garage_name',
                  'customer', 'valet_assignment', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_valet_assignment(self, obj):
        assignment = getattr(obj, 'valet_assignment', None)
        if assignment is None:
            return None
        return ValetAssignmentSerializer(assignment).data


class CalculatePriceSerializer(TimeWindowSerializer):
    slot = serializers.PrimaryKeyRelatedField(queryset=Slot.objects.select_related('garage__address'))
    pickup = LatLngSerializer(required=False)
    drop = LatLngSerializer(required=False)


class CreateBookingSerializer(CalculatePriceSerializer):
    vehicle_number = serializers.CharField(max_length=50)
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if attrs['start_time'] < timezone.now():
            raise serializers.ValidationError({'start_time': 'Start time cannot be in the past.'})
        return attrs


class AssignValetSerializer(serializers.Serializer):
    pickup_valet = serializers.CharField(required=False, allow_null=True)
    return_valet = serializers.CharField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs.get('pickup_valet') and not attrs.get('return_valet'):
            raise serializers.ValidationError('Provide pickup_valet or return_valet.')
        return attrs


class UpdateBookingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=BookingStatus.choices)

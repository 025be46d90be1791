from decimal import Decimal
from django.db.models import Count
from rest_framework import serializers
from .models import Garage, Address, Slot, Verification, Review


class AddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = Address
        fields = ['id', 'address', 'lat', 'lng']


class SlotSerializer(serializers.ModelSerializer):
    class Meta:
        model = Slot
        fields = ['id', 'display_name', 'price_per_hour', 'length', 'width', 'height', 'type', 'garage',
                  'created_at', 'updated_at']
        read_only_fields = ['garage']


class VerificationSerializer(serializers.ModelSerializer):
    # Declared explicitly: the garage is the primary key and the default
    # unique validator would reject the upsert done by create_verification
    garage = serializers.PrimaryKeyRelatedField(queryset=Garage.objects.all())
    garage_name = serializers.CharField(source='garage.display_name', read_only=True)

    class Meta:
        model = Verification
        fields = ['garage', 'garage_name', 'admin', 'verified', 'created_at', 'updated_at']
        read_only_fields = ['admin']


class ReviewSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.display_name', read_only=True)

    class Meta:
        model = Review
        fields = ['id', 'rating', 'comment', 'customer', 'customer_name', 'garage', 'created_at', 'updated_at']
        read_only_fields = ['customer']
        validators = []


class GarageSerializer(serializers.ModelSerializer):
    """Garage with address, verification state and slot counts per type"""
    address = AddressSerializer(read_only=True)
    company_name = serializers.CharField(source='company.display_name', read_only=True)
    verified = serializers.SerializerMethodField()
    slot_counts = serializers.SerializerMethodField()

    class Meta:
        model = Garage
        fields = ['id', 'display_name', 'description', 'images', 'company', 'company_name', 'address',
                  'verified', 'slot_counts', 'created_at', 'updated_at']
        read_only_fields = ['company']

    def get_verified(self, obj):
        return obj.is_verified

    def get_slot_counts(self, obj):
        rows = obj.slots.values('type').annotate(count=Count('id')).order_by('type')
        return [{'type': row['type'], 'count': row['count']} for row in rows]


class GarageUpdateSerializer(serializers.ModelSerializer):
    address = AddressSerializer(required=False)

    class Meta:
        model = Garage
        fields = ['display_name', 'description', 'images', 'address']

    def update(self, instance, validated_data):
        address_data = validated_data.pop('address', None)
        instance = super().update(instance, validated_data)
        if address_data:
            Address.objects.update_or_create(garage=instance, defaults=address_data)
        return instance


class SlotGroupSerializer(serializers.Serializer):
    """A batch of identical slots: ``count`` slots of one type and size"""
    type = serializers.ChoiceField(choices=Slot.TYPE_CHOICES, default=Slot.CAR)
    count = serializers.IntegerField(min_value=1, max_value=500)
    price_per_hour = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0.00'))
    display_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    length = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    width = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    height = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class CreateGarageSerializer(serializers.Serializer):
    display_name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    images = serializers.ListField(child=serializers.URLField(max_length=1000), required=False, default=list)
    address = AddressSerializer()
    slots = SlotGroupSerializer(many=True)

    def validate_slots(self, value):
        if not value:
            raise serializers.ValidationError('At least one slot group is required.')
        return value

    def create(self, validated_data):
        """Create the garage, its address and every slot; caller wraps this in a transaction"""
        company = validated_data['company']
        garage = Garage.objects.create(
            display_name=validated_data['display_name'],
            description=validated_data.get('description') or None,
            images=validated_data.get('images') or [],
            company=company,
        )
        Address.objects.create(garage=garage, **validated_data['address'])

        slots = []
        for group in validated_data['slots']:
            for index in range(group['count']):
                name = group.get('display_name') or group['type']
                slots.append(Slot(
                    garage=garage,
                    type=group['type'],
                    display_name=f"{name} {index + 1}",
                    price_per_hour=group['price_per_hour'],
                    length=group.get('length'),
                    width=group.get('width'),
                    height=group.get('height'),
                ))
        Slot.objects.bulk_create(slots)
        return garage


class LatLngSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class TimeWindowSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs['start_time'] >= attrs['end_time']:
            raise serializers.ValidationError({'end_time': 'End time must be after start time.'})
        return attrs


class SearchGaragesSerializer(TimeWindowSerializer):
    ne = LatLngSerializer()
    sw = LatLngSerializer()
    type = serializers.ChoiceField(choices=Slot.TYPE_CHOICES, required=False)
    price_per_hour_min = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    price_per_hour_max = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)
    length = serializers.IntegerField(min_value=0, required=False)
    width = serializers.IntegerField(min_value=0, required=False)
    height = serializers.IntegerField(min_value=0, required=False)
    skip = serializers.IntegerField(min_value=0, required=False, default=0)
    take = serializers.IntegerField(min_value=1, max_value=100, required=False, default=20)


class AvailableSlotsSerializer(TimeWindowSerializer):
    type = serializers.ChoiceField(choices=Slot.TYPE_CHOICES, required=False)

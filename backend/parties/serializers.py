from rest_framework import serializers
from backend.core.models import User
from backend.core.serializers import UserSerializer
from .models import Company, Admin, Manager, Valet, Customer


class RoleRowSerializer(serializers.ModelSerializer):
    """Base for role tables, whose primary key is the owning user's id"""
    id = serializers.PrimaryKeyRelatedField(source='user', queryset=User.objects.all())

    def validate_id(self, value):
        model = self.Meta.model
        if self.instance is None and model.objects.filter(pk=value.pk).exists():
            raise serializers.ValidationError(f'{model.__name__} with this id already exists.')
        return value

    def get_fields(self):
        fields = super().get_fields()
        # The owning user never changes once the row exists
        if self.instance is not None:
            fields['id'].read_only = True
        return fields


class CompanySerializer(serializers.ModelSerializer):
    garages_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Company
        fields = ['id', 'display_name', 'description', 'garages_count', 'created_at', 'updated_at']


class AdminSerializer(RoleRowSerializer):
    user = UserSerializer(read_only=True)
    verifications_count = serializers.SerializerMethodField()

    class Meta:
        model = Admin
        fields = ['id', 'user', 'verifications_count', 'created_at', 'updated_at']

    def get_verifications_count(self, obj):
        return obj.verifications.count()


class ManagerSerializer(RoleRowSerializer):
    company_name = serializers.CharField(source='company.display_name', read_only=True)

    class Meta:
        model = Manager
        fields = ['id', 'display_name', 'company', 'company_name', 'created_at', 'updated_at']
        read_only_fields = ['company']


class ValetSerializer(RoleRowSerializer):
    company_name = serializers.CharField(source='company.display_name', read_only=True)

    class Meta:
        model = Valet
        fields = ['id', 'display_name', 'image', 'licence_id', 'company', 'company_name', 'created_at', 'updated_at']
        read_only_fields = ['company']


class CustomerSerializer(RoleRowSerializer):
    class Meta:
        model = Customer
        fields = ['id', 'display_name', 'created_at', 'updated_at']


class CreateCompanySerializer(serializers.Serializer):
    display_name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    manager_display_name = serializers.CharField(max_length=255, required=False, allow_blank=True)

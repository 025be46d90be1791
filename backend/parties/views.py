import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404

from backend.core.permissions import (
    ROLE_ADMIN, ROLE_MANAGER, allow_authenticated, check_row_level_permission, ensure_authenticated,
)
from backend.core.utils import apply_list_query
from .models import Company, Admin, Manager, Valet, Customer
from .serializers import (
    CompanySerializer, AdminSerializer, ManagerSerializer, ValetSerializer, CustomerSerializer,
    CreateCompanySerializer,
)
from .utils import get_manager_company, check_company_permission, is_company_manager

logger = logging.getLogger('backend.parties')

ROLE_SORTABLE_FIELDS = ('created_at', 'updated_at', 'display_name')


def _role_row_owner_check(request, row):
    check_row_level_permission(request.user, row.pk)


# Admin views
@api_view(['GET', 'POST'])
@permission_classes([allow_authenticated(ROLE_ADMIN)])
def admin_list_create(request):
    """List admins or grant the admin role to a user"""
    if request.method == 'GET':
        admins = apply_list_query(
            Admin.objects.select_related('user'), request.query_params, ('created_at', 'updated_at')
        )
        return Response(AdminSerializer(admins, many=True).data)

    serializer = AdminSerializer(data=request.data)
    if serializer.is_valid():
        admin = serializer.save()
        logger.info(f"User {admin.pk} granted admin by {request.user.pk}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([allow_authenticated(ROLE_ADMIN)])
def admin_count(request):
    return Response({'count': Admin.objects.count()})


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def admin_me(request):
    """The caller's admin row"""
    admin = get_object_or_404(Admin.objects.select_related('user'), pk=request.user.pk)
    return Response(AdminSerializer(admin).data)


@api_view(['GET', 'DELETE'])
@permission_classes([allow_authenticated(ROLE_ADMIN)])
def admin_detail(request, pk):
    """Retrieve or revoke an admin"""
    admin = get_object_or_404(Admin.objects.select_related('user'), pk=pk)

    if request.method == 'GET':
        return Response(AdminSerializer(admin).data)

    _role_row_owner_check(request, admin)
    logger.info(f"Admin role of {admin.pk} revoked by {request.user.pk}")
    admin.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Manager views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def manager_list_create(request):
    """List managers (public) or create the caller's manager row"""
    if request.method == 'GET':
        queryset = Manager.objects.select_related('company')
        company_id = request.query_params.get('company')
        if company_id:
            queryset = queryset.filter(company_id=company_id)
        managers = apply_list_query(queryset, request.query_params, ROLE_SORTABLE_FIELDS)
        return Response(ManagerSerializer(managers, many=True).data)

    ensure_authenticated(request)
    serializer = ManagerSerializer(data=request.data)
    if serializer.is_valid():
        check_row_level_permission(request.user, serializer.validated_data['user'].pk)
        manager = serializer.save()
        logger.info(f"Manager {manager.pk} created by {request.user.pk}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([AllowAny])
def manager_count(request):
    queryset = Manager.objects.all()
    company_id = request.query_params.get('company')
    if company_id:
        queryset = queryset.filter(company_id=company_id)
    return Response({'count': queryset.count()})


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def manager_me(request):
    manager = get_object_or_404(Manager.objects.select_related('company'), pk=request.user.pk)
    return Response(ManagerSerializer(manager).data)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def manager_detail(request, pk):
    """Retrieve (public), update or delete (owner or admin) a manager"""
    if request.method == 'GET':
        manager = get_object_or_404(Manager.objects.select_related('company'), pk=pk)
        return Response(ManagerSerializer(manager).data)

    ensure_authenticated(request)
    manager = get_object_or_404(Manager, pk=pk)
    _role_row_owner_check(request, manager)

    if request.method == 'PATCH':
        serializer = ManagerSerializer(manager, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        logger.info(f"Manager {manager.pk} deleted by {request.user.pk}")
        manager.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Valet views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def valet_list_create(request):
    """List valets (public) or add a valet to the caller's company (managers)"""
    if request.method == 'GET':
        queryset = Valet.objects.select_related('company')
        company_id = request.query_params.get('company')
        if company_id:
            queryset = queryset.filter(company_id=company_id)
        valets = apply_list_query(queryset, request.query_params, ROLE_SORTABLE_FIELDS)
        return Response(ValetSerializer(valets, many=True).data)

    ensure_authenticated(request)
    if not allow_authenticated(ROLE_MANAGER)().has_permission(request, None):
        return Response({'error': 'Only managers can add valets'}, status=status.HTTP_403_FORBIDDEN)

    company = get_manager_company(request.user)
    serializer = ValetSerializer(data=request.data)
    if serializer.is_valid():
        valet = serializer.save(company=company)
        logger.info(f"Valet {valet.pk} added to company {company.pk} by {request.user.pk}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([AllowAny])
def valet_count(request):
    queryset = Valet.objects.all()
    company_id = request.query_params.get('company')
    if company_id:
        queryset = queryset.filter(company_id=company_id)
    return Response({'count': queryset.count()})


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def valet_me(request):
    valet = get_object_or_404(Valet.objects.select_related('company'), pk=request.user.pk)
    return Response(ValetSerializer(valet).data)


@api_view(['GET'])
@permission_classes([allow_authenticated(ROLE_MANAGER)])
def company_valets(request):
    """Valets working for the caller's company"""
    company = get_manager_company(request.user)
    valets = apply_list_query(company.valets.all(), request.query_params, ROLE_SORTABLE_FIELDS)
    return Response({
        'valets': ValetSerializer(valets, many=True).data,
        'count': company.valets.count(),
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def valet_detail(request, pk):
    """Retrieve (public), update or delete (the valet, its company's managers, admins) a valet"""
    if request.method == 'GET':
        valet = get_object_or_404(Valet.objects.select_related('company'), pk=pk)
        return Response(ValetSerializer(valet).data)

    ensure_authenticated(request)
    valet = get_object_or_404(Valet, pk=pk)
    if not is_company_manager(request.user, valet.company_id):
        _role_row_owner_check(request, valet)

    if request.method == 'PATCH':
        serializer = ValetSerializer(valet, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        logger.info(f"Valet {valet.pk} removed by {request.user.pk}")
        valet.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def customer_list_create(request):
    """List customers (public) or create the caller's customer row"""
    if request.method == 'GET':
        customers = apply_list_query(Customer.objects.all(), request.query_params, ROLE_SORTABLE_FIELDS)
        return Response(CustomerSerializer(customers, many=True).data)

    ensure_authenticated(request)
    serializer = CustomerSerializer(data=request.data)
    if serializer.is_valid():
        check_row_level_permission(request.user, serializer.validated_data['user'].pk)
        customer = serializer.save()
        logger.info(f"Customer {customer.pk} created by {request.user.pk}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([AllowAny])
def customer_count(request):
    return Response({'count': Customer.objects.count()})


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def customer_me(request):
    customer = get_object_or_404(Customer, pk=request.user.pk)
    return Response(CustomerSerializer(customer).data)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def customer_detail(request, pk):
    """Retrieve (public), update or delete (owner or admin) a customer"""
    if request.method == 'GET':
        customer = get_object_or_404(Customer, pk=pk)
        return Response(CustomerSerializer(customer).data)

    ensure_authenticated(request)
    customer = get_object_or_404(Customer, pk=pk)
    _role_row_owner_check(request, customer)

    if request.method == 'PATCH':
        serializer = CustomerSerializer(customer, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Company views
@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def company_list_create(request):
    """List companies (public) or create a company managed by the caller"""
    if request.method == 'GET':
        queryset = Company.objects.annotate(garages_count=Count('garages'))
        companies = apply_list_query(queryset, request.query_params, ('created_at', 'display_name'))
        return Response(CompanySerializer(companies, many=True).data)

    user = ensure_authenticated(request)
    serializer = CreateCompanySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    if Manager.objects.filter(pk=user.pk, company__isnull=False).exists():
        logger.warning(f"User {user.pk} attempted to create a second company")
        return Response({'error': 'You already manage a company.'}, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        with transaction.atomic():
            company = Company.objects.create(
                display_name=data['display_name'],
                description=data.get('description') or None,
            )
            Manager.objects.update_or_create(
                user=user,
                defaults={
                    'company': company,
                    'display_name': data.get('manager_display_name') or user.name,
                },
            )
    except IntegrityError as e:
        logger.error(f"IntegrityError creating company: {str(e)}", exc_info=True)
        return Response({'error': 'Database error occurred while creating company'}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Company '{company.display_name}' ({company.pk}) created by {user.pk}")
    return Response(CompanySerializer(company).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([allow_authenticated()])
def my_company(request):
    """The company the caller manages"""
    company = get_manager_company(request.user)
    company.garages_count = company.garages.count()
    return Response(CompanySerializer(company).data)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([AllowAny])
def company_detail(request, pk):
    """Retrieve (public), update or delete (company managers or admins) a company"""
    if request.method == 'GET':
        company = get_object_or_404(Company.objects.annotate(garages_count=Count('garages')), pk=pk)
        return Response(CompanySerializer(company).data)

    ensure_authenticated(request)
    company = get_object_or_404(Company, pk=pk)
    check_company_permission(request.user, company.pk)

    if request.method == 'PATCH':
        serializer = CompanySerializer(company, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            logger.info(f"Company {company.pk} updated by {request.user.pk}")
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        logger.info(f"Company {company.pk} ({company.display_name}) deleted by {request.user.pk}")
        company.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

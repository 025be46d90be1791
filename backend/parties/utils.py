"""
Utility functions resolving a caller's standing in a company
"""
from rest_framework.exceptions import NotFound, ValidationError, PermissionDenied
from backend.core.permissions import ROLE_ADMIN, has_role
from backend.parties.models import Customer, Manager, Valet


def get_manager_company(user):
    """Return the company managed by ``user``; raise NotFound if there is none"""
    manager = Manager.objects.select_related('company').filter(pk=user.pk).first()
    if manager is None or manager.company is None:
        raise NotFound("You don't have a company yet.")
    return manager.company


def valid_valet(user_id):
    """Return the valet row of ``user_id``; raise ValidationError if the user is not a valet"""
    valet = Valet.objects.select_related('company').filter(pk=user_id).first()
    if valet is None:
        raise ValidationError({'error': 'You are not a valet.'})
    return valet


def get_or_create_customer(user):
    """Customers are created lazily the first time a user books or reviews"""
    customer, created = Customer.objects.get_or_create(
        user=user,
        defaults={'display_name': user.name},
    )
    return customer


def is_company_manager(user, company_id):
    return bool(company_id) and Manager.objects.filter(pk=user.pk, company_id=company_id).exists()


def is_company_valet(user, company_id):
    return bool(company_id) and Valet.objects.filter(pk=user.pk, company_id=company_id).exists()


def check_company_permission(user, company_id, allow_valets=False):
    """
    Raise PermissionDenied unless ``user`` manages the company (or, with
    ``allow_valets``, works there as a valet). Admins always pass.
    """
    if has_role(user, ROLE_ADMIN):
        return True
    if is_company_manager(user, company_id):
        return True
    if allow_valets and is_company_valet(user, company_id):
        return True
    raise PermissionDenied('You do not have access to this company.')

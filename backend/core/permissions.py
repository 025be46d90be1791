"""
Role based authorization.

A user holds a role when a row keyed by the user's id exists in the matching
role table (parties.Admin, parties.Manager, parties.Valet). Endpoints declare
the roles they accept with ``allow_authenticated``; handlers that touch a
row owned by a specific user call ``check_row_level_permission``.
"""
import logging

from django.apps import apps
from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import BasePermission

from .model_cache import cache_user_roles, get_cached_user_roles

logger = logging.getLogger(__name__)

ROLE_ADMIN = 'admin'
ROLE_MANAGER = 'manager'
ROLE_VALET = 'valet'

# Aggregation order: roles are always reported in this order
ROLE_TABLES = (
    (ROLE_ADMIN, 'parties.Admin'),
    (ROLE_MANAGER, 'parties.Manager'),
    (ROLE_VALET, 'parties.Valet'),
)
ROLES = tuple(role for role, _ in ROLE_TABLES)


def get_user_roles(user_id):
    """Return the roles held by ``user_id`` as a list, e.g. ``['admin', 'valet']``"""
    cached = get_cached_user_roles(user_id)
    if cached is not None:
        return list(cached)

    roles = []
    for role, model_label in ROLE_TABLES:
        if apps.get_model(model_label).objects.filter(pk=user_id).exists():
            roles.append(role)

    cache_user_roles(user_id, roles)
    return roles


def user_roles(user):
    """Roles of an authenticated request user, empty for anonymous users"""
    if not user or not user.is_authenticated:
        return []
    roles = getattr(user, 'roles', None)
    if roles is None:
        roles = get_user_roles(user.pk)
        user.roles = roles
    return roles


def has_role(user, *roles):
    return any(role in user_roles(user) for role in roles)


class AllowAuthenticated(BasePermission):
    """
    Requires an authenticated caller.

    Subclasses (see ``allow_authenticated``) narrow access to callers holding
    at least one of ``required_roles``.
    """
    required_roles = ()
    message = 'Forbidden resource'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            raise NotAuthenticated('No token provided.')

        if not self.required_roles:
            return True

        if has_role(user, *self.required_roles):
            return True

        logger.warning(
            f"User {user.pk} with roles {user_roles(user)} denied, requires one of {list(self.required_roles)}"
        )
        return False


def allow_authenticated(*roles):
    """Build a permission class accepting authenticated callers holding any of ``roles``"""
    unknown = set(roles) - set(ROLES)
    if unknown:
        raise ValueError(f"Unknown roles: {sorted(unknown)}")
    if not roles:
        return AllowAuthenticated
    name = 'Allow' + ''.join(role.capitalize() for role in roles)
    return type(name, (AllowAuthenticated,), {'required_roles': tuple(roles)})


def check_row_level_permission(user, requested_uid, roles=(ROLE_ADMIN,)):
    """
    Raise PermissionDenied unless ``user`` owns ``requested_uid``.

    ``requested_uid`` is a single user id or a list of co-owner ids; callers
    holding any of ``roles`` pass regardless of ownership.
    """
    if not requested_uid:
        raise PermissionDenied('No row owner to check against.')

    if has_role(user, *roles):
        return True

    uids = [requested_uid] if isinstance(requested_uid, str) else [uid for uid in requested_uid if uid]
    if user.pk not in uids:
        logger.warning(f"Row level permission denied for user {user.pk} on {uids}")
        raise PermissionDenied()

    return True


def ensure_authenticated(request):
    """Inline form of ``allow_authenticated()`` for views mixing public and guarded methods"""
    AllowAuthenticated().has_permission(request, None)
    return request.user

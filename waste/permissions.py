"""
Role based capability checks.

Every write endpoint asks one question, "may this caller perform this
action", answered by :func:`has_capability` from the single policy
table below.  DRF permission classes are derived from the same table
so views never repeat role lists.
"""
from rest_framework.permissions import BasePermission

from .models import Role


class Capability:
    VIEW_ALL_HOSPITALS = 'view_all_hospitals'
    MANAGE_LOCATION_CATEGORIES = 'manage_location_categories'
    MANAGE_WASTE_TYPE_COSTS = 'manage_waste_type_costs'
    MANAGE_LOCATIONS = 'manage_locations'
    MANAGE_COEFFICIENTS = 'manage_coefficients'
    RESOLVE_ISSUES = 'resolve_issues'
    RECORD_COLLECTIONS = 'record_collections'
    REPORT_ISSUES = 'report_issues'


ALL_ROLES = frozenset({Role.HQ, Role.HOSPITAL_MANAGER, Role.COLLECTOR})
MANAGER_ROLES = frozenset({Role.HQ, Role.HOSPITAL_MANAGER})

POLICY: dict[str, frozenset[str]] = {
    Capability.VIEW_ALL_HOSPITALS: frozenset({Role.HQ}),
    Capability.MANAGE_LOCATION_CATEGORIES: frozenset({Role.HQ}),
    Capability.MANAGE_WASTE_TYPE_COSTS: frozenset({Role.HQ}),
    Capability.MANAGE_LOCATIONS: MANAGER_ROLES,
    Capability.MANAGE_COEFFICIENTS: MANAGER_ROLES,
    Capability.RESOLVE_ISSUES: MANAGER_ROLES,
    Capability.RECORD_COLLECTIONS: ALL_ROLES,
    Capability.REPORT_ISSUES: ALL_ROLES,
}


def role_names_for(user) -> set[str]:
    if not (user and getattr(user, 'is_authenticated', False)):
        return set()
    return user.role_names()


def is_allowed(roles, capability: str) -> bool:
    """Pure policy lookup: does any of ``roles`` grant ``capability``?"""
    allowed = POLICY.get(capability)
    if allowed is None:
        raise KeyError(f"unknown capability: {capability}")
    return bool(allowed & set(roles))


def has_capability(user, capability: str) -> bool:
    return is_allowed(role_names_for(user), capability)


def capability_permission(capability: str) -> type[BasePermission]:
    """Return a DRF permission class granting access when the caller holds ``capability``."""

    class HasCapability(BasePermission):
        message = f'missing capability: {capability}'

        def has_permission(self, request, view) -> bool:  # type: ignore[override]
            user = getattr(request, 'user', None)
            return bool(user and user.is_authenticated and has_capability(user, capability))

    HasCapability.__name__ = f'Has_{capability}'
    return HasCapability


CanManageLocationCategories = capability_permission(Capability.MANAGE_LOCATION_CATEGORIES)
CanManageLocations = capability_permission(Capability.MANAGE_LOCATIONS)
CanManageCoefficients = capability_permission(Capability.MANAGE_COEFFICIENTS)
CanResolveIssues = capability_permission(Capability.RESOLVE_ISSUES)
CanRecordCollections = capability_permission(Capability.RECORD_COLLECTIONS)

"""
Hospital visibility for the calling user.

HQ sees every hospital and may ask for all of them at once.  Everyone
else sees only the hospitals they hold a membership for and is
answered from their default membership when they ask for none.
"""
from __future__ import annotations

from typing import Optional

from rest_framework.exceptions import PermissionDenied, ValidationError

from waste.exceptions import HospitalNotFound, NoHospitalAssigned
from waste.models import Hospital
from waste.permissions import Capability, has_capability

ALL_HOSPITALS = ('', 'all')


def parse_hospital_id(raw) -> Optional[int]:
    if raw is None:
        return None
    if isinstance(raw, int):
        return raw
    text = str(raw).strip().lower()
    if text in ALL_HOSPITALS:
        return None
    try:
        return int(text)
    except ValueError:
        raise ValidationError({'hospitalId': 'must be an integer or "all"'})


def visible_hospital_ids(user) -> Optional[list[int]]:
    """Membership hospital ids, default first; ``None`` means unrestricted."""
    if has_capability(user, Capability.VIEW_ALL_HOSPITALS):
        return None
    return list(
        user.memberships.order_by('-is_default', 'hospital_id').values_list('hospital_id', flat=True)
    )


def resolve_hospital_scope(user, requested=None) -> Optional[int]:
    """Return the hospital id a read should be limited to, ``None`` for all."""
    hospital_id = parse_hospital_id(requested)
    visible = visible_hospital_ids(user)
    if visible is None:
        if hospital_id is not None and not Hospital.objects.filter(pk=hospital_id).exists():
            raise HospitalNotFound()
        return hospital_id
    if not visible:
        raise NoHospitalAssigned()
    if hospital_id is None:
        return visible[0]
    if hospital_id not in visible:
        raise PermissionDenied('Hospital is not visible to this user')
    return hospital_id


def ensure_hospital_access(user, hospital_id) -> Hospital:
    """Load a hospital a write names, refusing ones outside the caller's scope."""
    hospital_id = parse_hospital_id(hospital_id)
    if hospital_id is None:
        raise ValidationError({'hospitalId': 'is required'})
    hospital = Hospital.objects.filter(pk=hospital_id).first()
    if hospital is None:
        raise HospitalNotFound()
    visible = visible_hospital_ids(user)
    if visible is not None and hospital_id not in visible:
        if not visible:
            raise NoHospitalAssigned()
        raise PermissionDenied('Hospital is not visible to this user')
    return hospital


def scoped_hospital_ids(user, requested=None) -> Optional[list[int]]:
    """Hospital ids a list read covers: the requested one, else every visible one."""
    if parse_hospital_id(requested) is not None:
        return [resolve_hospital_scope(user, requested)]
    visible = visible_hospital_ids(user)
    if visible is not None and not visible:
        raise NoHospitalAssigned()
    return visible

"""Object builders shared by the test modules."""
from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from waste.models import HospitalMembership, Role, User, WasteCollection


def local_dt(*args) -> datetime:
    return timezone.make_aware(datetime(*args))


def make_user(username, roles=(), hospitals=(), password='P@ssw0rd1'):
    user = User.objects.create_user(username=username, password=password)
    for name in roles:
        user.roles.add(Role.objects.get_or_create(name=name)[0])
    for i, hospital in enumerate(hospitals):
        HospitalMembership.objects.create(user=user, hospital=hospital, is_default=(i == 0))
    return user


def make_collection(hospital, waste_type, tag, collected_at=None, weight=None, weighed_at=None, location=None):
    completed = weight is not None
    return WasteCollection.objects.create(
        hospital=hospital,
        waste_type=waste_type,
        location=location,
        tag_code=tag,
        collected_at=collected_at or timezone.now(),
        weight_kg=Decimal(str(weight)) if completed else None,
        weighed_at=(weighed_at or collected_at or timezone.now()) if completed else None,
        status=WasteCollection.STATUS_COMPLETED if completed else WasteCollection.STATUS_PENDING,
    )

"""
Database models for the medical waste tracking backend.

Hospitals, users with a role set and hospital memberships, waste types
with their effective-dated cost history, location categories and
locations, monthly operational coefficients, tagged waste collections
and field-reported issues (nonconformities).  Field names follow the
JSON contract of the dashboard client where that keeps the views thin.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class Hospital(models.Model):
    """A facility whose waste is tracked.

    Hospitals are never deleted in normal operation; ``is_active`` is
    cleared instead.
    """
    code = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=255)
    color_hex = models.CharField(max_length=7, default='#3b82f6')
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['code']

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class Role(models.Model):
    HQ = 'HQ'
    HOSPITAL_MANAGER = 'HOSPITAL_MANAGER'
    COLLECTOR = 'COLLECTOR'
    NAME_CHOICES = [
        (HQ, 'Headquarters'),
        (HOSPITAL_MANAGER, 'Hospital manager'),
        (COLLECTOR, 'Collector'),
    ]
    name = models.CharField(max_length=50, unique=True, choices=NAME_CHOICES)
    description = models.TextField(blank=True)

    def __str__(self) -> str:
        return self.name


class User(AbstractUser):
    """Custom user with a role set and hospital memberships.

    A user may hold several roles at once (the seeded HQ account holds
    all three).  Hospital visibility for non-HQ users comes from
    :class:`HospitalMembership`.
    """
    roles = models.ManyToManyField(Role, blank=True, related_name='users')
    hospitals = models.ManyToManyField(
        Hospital, through='HospitalMembership', blank=True, related_name='members'
    )

    def role_names(self) -> set[str]:
        names = set(self.roles.values_list('name', flat=True))
        if self.is_superuser:
            names.add(Role.HQ)
        return names

    def display_name(self) -> str:
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or self.username

    def __str__(self) -> str:
        return self.username


class HospitalMembership(models.Model):
    """Links a user to a hospital they may see, one of them flagged default."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='memberships')
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='memberships')
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = [('user', 'hospital')]

    def __str__(self) -> str:
        return f"{self.user} @ {self.hospital.code}{' (default)' if self.is_default else ''}"


class WasteType(models.Model):
    """A waste stream such as ``medical`` or ``recycle``.

    ``cost_per_kg`` is the static fallback rate used only when no
    :class:`WasteTypeCost` record is effective for a date.
    """
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    color_hex = models.CharField(max_length=7)
    cost_per_kg = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        ordering = ['id']

    def __str__(self) -> str:
        return self.code


class WasteTypeCost(models.Model):
    """Cost per kg effective from a calendar day until superseded.

    Negative values are credits (e.g. recyclables sold back).
    """
    waste_type = models.ForeignKey(WasteType, on_delete=models.CASCADE, related_name='costs')
    effective_from = models.DateField()
    cost_per_kg = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['waste_type', 'effective_from'], name='uq_waste_type_cost_day'),
        ]
        ordering = ['waste_type_id', '-effective_from']

    def __str__(self) -> str:
        return f"{self.waste_type_id} from {self.effective_from}: {self.cost_per_kg}"


class LocationCategory(models.Model):
    """Global location category with a benchmark waste factor per unit."""
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    unit = models.CharField(max_length=100)
    reference_waste_factor = models.DecimalField(max_digits=10, decimal_places=2, default=1)

    class Meta:
        ordering = ['code']
        verbose_name_plural = 'location categories'

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


class Location(models.Model):
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='locations')
    code = models.CharField(max_length=100)
    category = models.ForeignKey(
        LocationCategory, null=True, blank=True, on_delete=models.SET_NULL, related_name='locations'
    )
    custom_label = models.CharField(max_length=255, null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['hospital', 'code'], name='uq_location_hospital_code'),
        ]

    def __str__(self) -> str:
        return self.code


class OperationalCoefficient(models.Model):
    """Monthly HBYS-sourced count (bed-days, surgeries...) per hospital and category."""
    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='coefficients')
    category = models.ForeignKey(LocationCategory, on_delete=models.CASCADE, related_name='coefficients')
    # YYYY-MM
    period = models.CharField(max_length=7)
    value = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['hospital', 'category', 'period'], name='uq_coefficient_hospital_category_period'
            ),
        ]

    def __str__(self) -> str:
        return f"{self.hospital_id}/{self.category_id} {self.period}={self.value}"


class WasteCollection(models.Model):
    """One tagged bag/container picked up in the field.

    Created ``pending`` without a weight; a weigh-in sets ``weight_kg``
    and ``weighed_at`` and moves it to ``completed`` exactly once.
    """
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_COMPLETED, 'completed'),
        (STATUS_CANCELLED, 'cancelled'),
    )

    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='collections')
    location = models.ForeignKey(
        Location, null=True, blank=True, on_delete=models.SET_NULL, related_name='collections'
    )
    waste_type = models.ForeignKey(WasteType, on_delete=models.PROTECT, related_name='collections')
    tag_code = models.CharField(max_length=50, unique=True)
    collected_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='collections'
    )
    collected_at = models.DateTimeField(default=timezone.now, db_index=True)
    weighed_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    weight_kg = models.DecimalField(max_digits=10, decimal_places=3, null=True, blank=True)
    is_manual_weight = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['hospital', 'collected_at']),
        ]

    def __str__(self) -> str:
        return f"{self.tag_code} ({self.status})"


class Issue(models.Model):
    """A field-reported nonconformity, optionally tied to a tagged collection."""
    CATEGORY_SEGREGATION = 'segregation'
    CATEGORY_NON_COMPLIANCE = 'non_compliance'
    CATEGORY_TECHNICAL = 'technical'
    CATEGORY_OTHER = 'other'
    CATEGORY_CHOICES = (
        (CATEGORY_SEGREGATION, 'segregation'),
        (CATEGORY_NON_COMPLIANCE, 'non_compliance'),
        (CATEGORY_TECHNICAL, 'technical'),
        (CATEGORY_OTHER, 'other'),
    )
    CATEGORIES = tuple(c for c, _ in CATEGORY_CHOICES)

    hospital = models.ForeignKey(Hospital, on_delete=models.CASCADE, related_name='issues')
    waste_collection = models.ForeignKey(
        WasteCollection, null=True, blank=True, on_delete=models.SET_NULL, related_name='issues'
    )
    location = models.ForeignKey(
        Location, null=True, blank=True, on_delete=models.SET_NULL, related_name='issues'
    )
    # Raw text as scanned; kept even when it matched no collection.
    tag_code = models.CharField(max_length=50, null=True, blank=True)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    description = models.TextField()
    reported_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='reported_issues'
    )
    photo_urls = models.JSONField(default=list, blank=True)
    reported_at = models.DateTimeField(default=timezone.now, db_index=True)
    is_resolved = models.BooleanField(default=False, db_index=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['hospital', 'reported_at']),
        ]

    def __str__(self) -> str:
        return f"{self.category} @ {self.hospital_id} ({'resolved' if self.is_resolved else 'open'})"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"

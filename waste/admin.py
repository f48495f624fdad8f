"""
Django admin registrations for the waste tracking models.

HQ staff use ``/admin/`` for onboarding hospitals and users and for
manual corrections; day to day configuration goes through the API.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    AuditEvent,
    Hospital,
    HospitalMembership,
    Issue,
    Location,
    LocationCategory,
    OperationalCoefficient,
    Role,
    User,
    WasteCollection,
    WasteType,
    WasteTypeCost,
)


@admin.register(Hospital)
class HospitalAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'color_hex', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('code', 'name')


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ('name', 'description')


class MembershipInline(admin.TabularInline):
    model = HospitalMembership
    extra = 0


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'first_name', 'last_name', 'is_staff', 'is_superuser')
    filter_horizontal = ('roles', 'groups', 'user_permissions')
    fieldsets = BaseUserAdmin.fieldsets + (('Waste tracking', {'fields': ('roles',)}),)
    inlines = [MembershipInline]


class WasteTypeCostInline(admin.TabularInline):
    model = WasteTypeCost
    extra = 0


@admin.register(WasteType)
class WasteTypeAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'cost_per_kg', 'is_active')
    list_filter = ('is_active',)
    inlines = [WasteTypeCostInline]


@admin.register(WasteTypeCost)
class WasteTypeCostAdmin(admin.ModelAdmin):
    list_display = ('waste_type', 'effective_from', 'cost_per_kg', 'updated_at')
    list_filter = ('waste_type',)
    date_hierarchy = 'effective_from'


@admin.register(LocationCategory)
class LocationCategoryAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'unit', 'reference_waste_factor')
    search_fields = ('code', 'name')


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ('code', 'hospital', 'category', 'custom_label', 'is_active')
    list_filter = ('hospital', 'category', 'is_active')
    search_fields = ('code', 'custom_label')


@admin.register(OperationalCoefficient)
class OperationalCoefficientAdmin(admin.ModelAdmin):
    list_display = ('hospital', 'category', 'period', 'value')
    list_filter = ('hospital', 'category', 'period')


@admin.register(WasteCollection)
class WasteCollectionAdmin(admin.ModelAdmin):
    list_display = ('tag_code', 'hospital', 'waste_type', 'status', 'weight_kg', 'collected_at', 'weighed_at')
    list_filter = ('status', 'hospital', 'waste_type')
    search_fields = ('tag_code',)
    date_hierarchy = 'collected_at'


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    list_display = ('id', 'hospital', 'category', 'tag_code', 'is_resolved', 'reported_at')
    list_filter = ('is_resolved', 'category', 'hospital')
    search_fields = ('tag_code', 'description')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')

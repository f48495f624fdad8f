"""
URL mappings for the waste tracking API.

Paths carry no trailing slash; ``APPEND_SLASH`` is off.
"""
from django.urls import include, path

from .auth_views import login_view, logout_view, me_view
from .views import analytics, benchmark, catalog, collections, dashboard, health, issues, reference, reports

urlpatterns = [
    # auth
    path('api/auth/login', login_view, name='auth-login'),
    path('api/auth/logout', logout_view, name='auth-logout'),
    path('api/auth/me', me_view, name='auth-me'),

    # reference data
    path('api/hospitals', reference.list_hospitals, name='hospitals'),
    path('api/waste-types', reference.list_waste_types, name='waste-types'),

    # aggregates
    path('api/dashboard/summary', dashboard.dashboard_summary, name='dashboard-summary'),
    path('api/analytics', analytics.analytics, name='analytics'),
    path('api/reports', reports.reports, name='reports'),
    path('api/detailed-analytics/performance', benchmark.performance, name='detailed-analytics-performance'),
    path('api/detailed-analytics/comparison', benchmark.comparison, name='detailed-analytics-comparison'),
    path('api/detailed-analytics/category-comparison', benchmark.category_comparison,
         name='detailed-analytics-category-comparison'),
    path('api/detailed-analytics/category-performance', benchmark.category_performance,
         name='detailed-analytics-category-performance'),

    # settings
    path('api/settings/location-categories', catalog.location_categories, name='location-categories'),
    path('api/settings/location-categories/<int:pk>', catalog.location_category_detail,
         name='location-category-detail'),
    path('api/settings/locations', catalog.locations, name='locations'),
    path('api/settings/locations/<int:pk>', catalog.location_detail, name='location-detail'),
    path('api/settings/operational-coefficients', catalog.upsert_coefficients, name='coefficients-upsert'),
    path('api/settings/operational-coefficients/<int:hospital_id>', catalog.hospital_coefficients,
         name='coefficients'),
    path('api/settings/operational-coefficients/<int:hospital_id>/periods', catalog.hospital_coefficient_periods,
         name='coefficient-periods'),
    path('api/settings/waste-type-costs', catalog.waste_type_costs, name='waste-type-costs'),

    # collections
    path('api/waste/collections', collections.collections, name='collections'),
    path('api/waste/collections/<str:tag_code>', collections.collection_by_tag, name='collection-detail'),
    path('api/waste/collections/<str:tag_code>/weigh', collections.weigh, name='collection-weigh'),

    # issues
    path('api/issues', issues.issues, name='issues'),
    path('api/issues/summary', issues.issue_summary, name='issues-summary'),
    path('api/issues/<int:pk>', issues.issue_detail, name='issue-detail'),
    path('api/issues/<int:pk>/resolve', issues.issue_resolve, name='issue-resolve'),

    # ops
    path('healthz', health.healthz, name='healthz'),
    path('', include('django_prometheus.urls')),
]

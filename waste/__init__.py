"""Medical waste tracking app.

Models, services, serializers, views and route registrations for
collections, weigh-ins, nonconformity reports and cost analytics.
"""

from django.utils import timezone
from rest_framework import serializers

from waste.services.benchmark import METRICS

from .reports import split_ids


class PeriodQuerySerializer(serializers.Serializer):
    """Optional inclusive day range, year to date when omitted."""

    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)

    def validate(self, attrs):
        end = attrs.get('endDate') or timezone.localdate()
        start = attrs.get('startDate') or end.replace(month=1, day=1)
        if start > end:
            raise serializers.ValidationError({'endDate': 'must not be before startDate'})
        attrs['startDate'], attrs['endDate'] = start, end
        return attrs


class ComparisonQuerySerializer(PeriodQuerySerializer):
    metric = serializers.ChoiceField(choices=METRICS, default='weight')
    hospitalFilter = serializers.CharField(required=False, allow_blank=True, default='all')
    categoryFilter = serializers.CharField(required=False, allow_blank=True, default='all')

    def validate_hospitalFilter(self, v):
        v = (v or '').strip()
        return None if v in ('', 'all') else split_ids(v)

    def validate_categoryFilter(self, v):
        v = (v or '').strip()
        if v in ('', 'all'):
            return None
        try:
            return int(v)
        except ValueError:
            raise serializers.ValidationError('expected "all" or a category id')


class HospitalPeriodQuerySerializer(PeriodQuerySerializer):
    hospitalId = serializers.IntegerField()


class CategoryComparisonQuerySerializer(HospitalPeriodQuerySerializer):
    metric = serializers.ChoiceField(choices=METRICS)

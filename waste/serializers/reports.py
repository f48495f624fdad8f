from rest_framework import serializers


def split_ids(raw: str) -> list[int]:
    try:
        return [int(part) for part in raw.split(',') if part.strip()]
    except ValueError:
        raise serializers.ValidationError('expected "all" or comma separated hospital ids')


class ReportQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField()
    endDate = serializers.DateField()
    hospitalFilter = serializers.CharField(required=False, allow_blank=True, default='all')
    wasteTypeFilter = serializers.CharField(required=False, allow_blank=True, default='all')
    categoryFilter = serializers.CharField(required=False, allow_blank=True, default='all')

    def validate_hospitalFilter(self, v):
        v = (v or '').strip()
        if v in ('', 'all'):
            return None
        return split_ids(v)

    def validate_wasteTypeFilter(self, v):
        v = (v or '').strip()
        return None if v in ('', 'all') else v

    def validate_categoryFilter(self, v):
        v = (v or '').strip()
        if v in ('', 'all'):
            return None
        try:
            return int(v)
        except ValueError:
            raise serializers.ValidationError('expected "all" or a category id')

    def validate(self, attrs):
        if attrs['startDate'] > attrs['endDate']:
            raise serializers.ValidationError({'endDate': 'must not be before startDate'})
        return attrs

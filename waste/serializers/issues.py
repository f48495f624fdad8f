from rest_framework import serializers


class IssueCreateSerializer(serializers.Serializer):
    hospitalId = serializers.IntegerField()
    # Unknown categories are refused by the service with invalid_issue_category.
    category = serializers.CharField(max_length=20)
    description = serializers.CharField(max_length=4000)
    tagCode = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    locationCode = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    photoUrls = serializers.ListField(
        child=serializers.URLField(max_length=500), required=False, allow_empty=True, max_length=10
    )


class IssueListQuerySerializer(serializers.Serializer):
    hospitalId = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=['open', 'resolved', 'all'], required=False, default='all')

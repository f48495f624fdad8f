from decimal import Decimal

from rest_framework import serializers


class CollectionCreateSerializer(serializers.Serializer):
    hospitalId = serializers.IntegerField()
    wasteTypeCode = serializers.CharField(max_length=50)
    locationCode = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    tagCode = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)


class CollectionWeighSerializer(serializers.Serializer):
    weightKg = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=Decimal('0.001'))
    isManualWeight = serializers.BooleanField(required=False, default=True)


class CollectionListQuerySerializer(serializers.Serializer):
    hospitalId = serializers.CharField(required=False, allow_blank=True)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=1000)

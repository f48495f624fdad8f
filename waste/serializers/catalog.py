from decimal import Decimal

from rest_framework import serializers


class LocationCategoryCreateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    name = serializers.CharField(max_length=255)
    unit = serializers.CharField(max_length=100)
    referenceWasteFactor = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0'), required=False
    )


class LocationCategoryUpdateSerializer(serializers.Serializer):
    referenceWasteFactor = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))


class LocationCreateSerializer(serializers.Serializer):
    hospitalId = serializers.IntegerField()
    categoryId = serializers.IntegerField()
    customLabel = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)


class LocationUpdateSerializer(serializers.Serializer):
    isActive = serializers.BooleanField()


class CoefficientValueSerializer(serializers.Serializer):
    categoryId = serializers.IntegerField()
    value = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))


class CoefficientUpsertSerializer(serializers.Serializer):
    hospitalId = serializers.IntegerField()
    period = serializers.RegexField(r'^\d{4}-(0[1-9]|1[0-2])$', max_length=7)
    values = CoefficientValueSerializer(many=True, allow_empty=False)


class WasteTypeCostItemSerializer(serializers.Serializer):
    wasteTypeId = serializers.IntegerField()
    # Negative rates are credits.
    costPerKg = serializers.DecimalField(max_digits=10, decimal_places=2)


class WasteTypeCostUpsertSerializer(serializers.Serializer):
    effectiveFrom = serializers.DateField()
    costs = WasteTypeCostItemSerializer(many=True, allow_empty=False)

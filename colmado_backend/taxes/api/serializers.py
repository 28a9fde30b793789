# taxes/api/serializers.py

from rest_framework import serializers

from taxes.models import ITBISPeriodSummary, ITBISRetention, NCFRange, NCFUsage


class ITBISPeriodSummarySerializer(serializers.ModelSerializer):
    is_locked = serializers.BooleanField(read_only=True)

    class Meta:
        model = ITBISPeriodSummary
        fields = "__all__"
        read_only_fields = [f.name for f in ITBISPeriodSummary._meta.fields]


class FilePeriodSerializer(serializers.Serializer):
    confirmation = serializers.CharField(max_length=64)


class ReopenPeriodSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)


class ITBISRetentionSerializer(serializers.ModelSerializer):
    class Meta:
        model = ITBISRetention
        fields = ["id", "date", "amount", "retained_by", "retained_by_rnc", "reference", "created_by", "created_at"]
        read_only_fields = ("id", "created_by", "created_at")


class NCFRangeSerializer(serializers.ModelSerializer):
    remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = NCFRange
        fields = [
            "id",
            "ncf_type",
            "start_number",
            "end_number",
            "current_number",
            "remaining",
            "expiration_date",
            "authorization",
            "is_active",
            "created_at",
        ]
        read_only_fields = ("id", "current_number", "remaining", "is_active", "created_at")

    def validate(self, attrs):
        if attrs["end_number"] < attrs.get("start_number", 1):
            raise serializers.ValidationError({"end_number": "end_number must be >= start_number"})
        return attrs


class NCFUsageSerializer(serializers.ModelSerializer):
    class Meta:
        model = NCFUsage
        fields = "__all__"
        read_only_fields = [f.name for f in NCFUsage._meta.fields]


class IssueNCFSerializer(serializers.Serializer):
    ncf_type = serializers.ChoiceField(choices=NCFRange.TYPE_CHOICES)


class VoidNCFSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255)

# audit/api/serializers.py

from rest_framework import serializers

from audit.models import AuditLogEntry


class AuditLogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLogEntry
        fields = [
            "uuid",
            "action",
            "entity_type",
            "entity_id",
            "actor",
            "timestamp",
            "before",
            "after",
            "details",
        ]
        read_only_fields = fields

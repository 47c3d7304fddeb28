from rest_framework import serializers
from .models import AppSettings


class AppSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = AppSettings
        fields = (
            "school_name",
            "payment_reference_valid_days",
            "status_poll_interval_seconds",
            "reminder_lookahead_days",
            "reminder_include_overdue",
            "reminder_stale_after_minutes",
            "updated_at",
        )
        read_only_fields = ("updated_at",)

    def validate_payment_reference_valid_days(self, value):
        if value < 1:
            raise serializers.ValidationError("La referencia debe valer al menos un día.")
        return value

    def validate_status_poll_interval_seconds(self, value):
        if value < 5:
            raise serializers.ValidationError("El intervalo mínimo es de 5 segundos.")
        return value

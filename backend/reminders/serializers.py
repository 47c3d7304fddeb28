from rest_framework import serializers
from .models import EmailLogEntry, ReminderRun


class EmailLogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailLogEntry
        fields = [
            "id",
            "run_date",
            "student_id",
            "debt_id",
            "student_name",
            "concept_name",
            "due_date",
            "recipient_contacts",
            "subject",
            "outcome",
            "error_message",
            "sent_at",
        ]


class ReminderRunSerializer(serializers.ModelSerializer):
    message = serializers.CharField(source="summary_message", read_only=True)

    class Meta:
        model = ReminderRun
        fields = [
            "run_date",
            "status",
            "success_count",
            "error_count",
            "omitted_count",
            "trigger",
            "attempts",
            "error_message",
            "started_at",
            "heartbeat_at",
            "finished_at",
            "message",
        ]


class HistoryFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=EmailLogEntry.Outcome.CHOICES, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=120)

    def validate(self, attrs):
        if attrs.get("date_from") and attrs.get("date_to") and attrs["date_from"] > attrs["date_to"]:
            raise serializers.ValidationError("date_from no puede ser posterior a date_to.")
        return attrs


class UpcomingReminderSerializer(serializers.Serializer):
    debt_id = serializers.IntegerField(source="debt.id")
    student = serializers.CharField(source="student_name")
    concept = serializers.CharField(source="concept_name")
    amount = serializers.DecimalField(source="debt.amount", max_digits=12, decimal_places=2)
    due_date = serializers.DateField(source="debt.due_date")
    contacts = serializers.ListField(child=serializers.EmailField())
    days_overdue = serializers.IntegerField()
    risk_level = serializers.CharField()
    omit_reason = serializers.CharField()

from rest_framework import serializers

from common.models import AppSettings
from .models import PendingPayment


class GenerateReferenceSerializer(serializers.Serializer):
    debt_id = serializers.IntegerField(min_value=1)
    student_id = serializers.IntegerField(min_value=1)
    concept_id = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class BankConfirmationProofSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(max_length=120)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    paid_at = serializers.DateTimeField(required=False)


class SpeiWebhookSerializer(BankConfirmationProofSerializer):
    reference = serializers.CharField(max_length=80)
    bank_name = serializers.CharField(max_length=80, required=False, allow_blank=True)
    account_from = serializers.CharField(max_length=40, required=False, allow_blank=True)


class IssuedReferenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = PendingPayment
        fields = [
            "reference",
            "bank_routing_id",
            "bank_name",
            "account_holder",
            "amount",
            "expires_at",
            "status",
        ]


class PaymentStatusSerializer(serializers.ModelSerializer):
    linked_payment_id = serializers.IntegerField(read_only=True)
    receipt_handle = serializers.SerializerMethodField()
    poll_interval_seconds = serializers.SerializerMethodField()
    is_terminal = serializers.SerializerMethodField()

    class Meta:
        model = PendingPayment
        fields = [
            "reference",
            "status",
            "student_id",
            "concept_id",
            "debt_id",
            "amount",
            "expires_at",
            "linked_payment_id",
            "receipt_handle",
            "is_terminal",
            "poll_interval_seconds",
        ]

    def get_receipt_handle(self, obj):
        return obj.receipt_handle or None

    def get_is_terminal(self, obj):
        return obj.status in PendingPayment.Status.TERMINAL

    def get_poll_interval_seconds(self, obj):
        # Los estados terminales no necesitan más consultas
        if obj.status in PendingPayment.Status.TERMINAL:
            return None
        interval = self.context.get("poll_interval_seconds")
        if interval is None:
            interval = AppSettings.get_solo().status_poll_interval_seconds
        return interval

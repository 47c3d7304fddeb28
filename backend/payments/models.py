from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from students.models import Student


class PaymentConcept(models.Model):
    name = models.CharField(max_length=120)
    description = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Concepto de pago"
        verbose_name_plural = "Conceptos de pago"

    def __str__(self):
        return self.name


class Debt(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="debts")
    concept = models.ForeignKey(PaymentConcept, on_delete=models.PROTECT, related_name="debts")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateField(db_index=True)
    paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["due_date", "id"]
        verbose_name = "Adeudo"
        verbose_name_plural = "Adeudos"
        indexes = [
            models.Index(fields=["paid", "due_date"], name="debt_paid_due_idx"),
        ]

    def __str__(self):
        return f"{self.student} - {self.concept} ({self.due_date})"


class Payment(models.Model):
    METHOD_SPEI = "SPEI"
    METHOD = ((METHOD_SPEI, "Transferencia SPEI"),)

    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name="payments")
    concept = models.ForeignKey(PaymentConcept, on_delete=models.PROTECT, related_name="payments")
    debt = models.ForeignKey(Debt, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=10, choices=METHOD, default=METHOD_SPEI)
    reference = models.CharField(max_length=80, blank=True)
    paid_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-paid_at", "-id"]
        verbose_name = "Pago"
        verbose_name_plural = "Pagos"

    def __str__(self):
        return f"Pago {self.id} - {self.student}"


class PendingPayment(models.Model):
    """
    Referencia SPEI emitida para un adeudo, con su ciclo de vida hasta el pago.
    """

    class Status:
        PENDING_CONFIRMATION = "pending_confirmation"
        CONFIRMED = "confirmed"
        EXPIRED = "expired"
        PAID = "paid"

        CHOICES = [
            (PENDING_CONFIRMATION, "Pendiente de confirmación"),
            (CONFIRMED, "Confirmado por el banco"),
            (EXPIRED, "Caducado"),
            (PAID, "Pagado"),
        ]
        OPEN = (PENDING_CONFIRMATION, CONFIRMED)
        TERMINAL = (EXPIRED, PAID)

    ALLOWED_TRANSITIONS = {
        Status.PENDING_CONFIRMATION: {Status.CONFIRMED, Status.EXPIRED},
        Status.CONFIRMED: {Status.PAID},
        Status.EXPIRED: set(),
        Status.PAID: set(),
    }
    IMMUTABLE_FIELDS = ("reference", "amount", "bank_routing_id", "debt_id", "student_id", "concept_id")

    reference = models.CharField(max_length=80, unique=True)
    debt = models.ForeignKey(Debt, on_delete=models.PROTECT, related_name="pending_payments")
    student = models.ForeignKey(Student, on_delete=models.PROTECT, related_name="pending_payments")
    concept = models.ForeignKey(PaymentConcept, on_delete=models.PROTECT, related_name="pending_payments")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    bank_routing_id = models.CharField("CLABE", max_length=18)
    bank_name = models.CharField(max_length=80)
    account_holder = models.CharField(max_length=120)
    expires_at = models.DateTimeField()
    status = models.CharField(
        max_length=24,
        choices=Status.CHOICES,
        default=Status.PENDING_CONFIRMATION,
        db_index=True,
    )
    bank_transaction_id = models.CharField(max_length=120, blank=True)
    confirmed_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    expired_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    payment = models.OneToOneField(
        Payment,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="pending_payment",
    )
    receipt_handle = models.CharField(max_length=120, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name = "Referencia SPEI"
        verbose_name_plural = "Referencias SPEI"
        constraints = [
            # Una sola referencia abierta por adeudo
            models.UniqueConstraint(
                fields=["debt"],
                condition=Q(status__in=["pending_confirmation", "confirmed"]),
                name="uniq_open_reference_per_debt",
            ),
        ]

    def __str__(self):
        return self.reference

    @property
    def linked_payment_id(self):
        return self.payment_id

    def is_past_expiry(self, now):
        return self.status == self.Status.PENDING_CONFIRMATION and now > self.expires_at

    def can_transition(self, to_status):
        return to_status in self.ALLOWED_TRANSITIONS.get(self.status, set())

    def save(self, *args, **kwargs):
        if self.pk:
            original = (
                PendingPayment.objects.filter(pk=self.pk)
                .values(*self.IMMUTABLE_FIELDS)
                .first()
            )
            if original:
                for field in self.IMMUTABLE_FIELDS:
                    if original[field] != getattr(self, field):
                        raise ValidationError(f"{field} no puede modificarse en una referencia emitida.")
        super().save(*args, **kwargs)


class PaymentStatusTransition(models.Model):
    """Bitácora de cambios de estado de una referencia (solo inserción)."""

    pending_payment = models.ForeignKey(
        PendingPayment,
        on_delete=models.CASCADE,
        related_name="transitions",
    )
    from_status = models.CharField(max_length=24, blank=True)
    to_status = models.CharField(max_length=24)
    source = models.CharField(max_length=30, blank=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Cambio de estado"
        verbose_name_plural = "Cambios de estado"

    def __str__(self):
        return f"{self.pending_payment_id}: {self.from_status or '-'} → {self.to_status}"


class BankConfirmation(models.Model):
    """
    Confirmación recibida por webhook. (provider, transaction_id) es único para
    no reprocesar reenvíos del banco.
    """

    provider = models.CharField(max_length=30)
    transaction_id = models.CharField(max_length=120)
    reference = models.CharField(max_length=80, db_index=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    raw_payload = models.JSONField(default=dict, blank=True)
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-received_at"]
        verbose_name = "Confirmación bancaria"
        verbose_name_plural = "Confirmaciones bancarias"
        unique_together = ("provider", "transaction_id")

    def __str__(self):
        return f"{self.provider}:{self.transaction_id}"


class Receipt(models.Model):
    payment = models.OneToOneField(Payment, on_delete=models.CASCADE, related_name="receipt")
    handle = models.CharField(max_length=120, unique=True)
    issued_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-issued_at", "-id"]
        verbose_name = "Recibo"
        verbose_name_plural = "Recibos"

    def __str__(self):
        return self.handle

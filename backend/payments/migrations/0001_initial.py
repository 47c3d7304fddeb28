import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("students", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentConcept",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("description", models.CharField(blank=True, max_length=255)),
            ],
            options={
                "verbose_name": "Concepto de pago",
                "verbose_name_plural": "Conceptos de pago",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Debt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("due_date", models.DateField(db_index=True)),
                ("paid", models.BooleanField(default=False)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("concept", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="debts", to="payments.paymentconcept")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="debts", to="students.student")),
            ],
            options={
                "verbose_name": "Adeudo",
                "verbose_name_plural": "Adeudos",
                "ordering": ["due_date", "id"],
                "indexes": [models.Index(fields=["paid", "due_date"], name="debt_paid_due_idx")],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("method", models.CharField(choices=[("SPEI", "Transferencia SPEI")], default="SPEI", max_length=10)),
                ("reference", models.CharField(blank=True, max_length=80)),
                ("paid_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("concept", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="payments.paymentconcept")),
                ("debt", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="payments.debt")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="students.student")),
            ],
            options={
                "verbose_name": "Pago",
                "verbose_name_plural": "Pagos",
                "ordering": ["-paid_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="PendingPayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reference", models.CharField(max_length=80, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("bank_routing_id", models.CharField(max_length=18, verbose_name="CLABE")),
                ("bank_name", models.CharField(max_length=80)),
                ("account_holder", models.CharField(max_length=120)),
                ("expires_at", models.DateTimeField()),
                ("status", models.CharField(choices=[("pending_confirmation", "Pendiente de confirmación"), ("confirmed", "Confirmado por el banco"), ("expired", "Caducado"), ("paid", "Pagado")], db_index=True, default="pending_confirmation", max_length=24)),
                ("bank_transaction_id", models.CharField(blank=True, max_length=120)),
                ("confirmed_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("expired_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("receipt_handle", models.CharField(blank=True, max_length=120)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("concept", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="pending_payments", to="payments.paymentconcept")),
                ("debt", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="pending_payments", to="payments.debt")),
                ("payment", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="pending_payment", to="payments.payment")),
                ("student", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="pending_payments", to="students.student")),
            ],
            options={
                "verbose_name": "Referencia SPEI",
                "verbose_name_plural": "Referencias SPEI",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.AddConstraint(
            model_name="pendingpayment",
            constraint=models.UniqueConstraint(condition=models.Q(("status__in", ["pending_confirmation", "confirmed"])), fields=("debt",), name="uniq_open_reference_per_debt"),
        ),
        migrations.CreateModel(
            name="PaymentStatusTransition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(blank=True, max_length=24)),
                ("to_status", models.CharField(max_length=24)),
                ("source", models.CharField(blank=True, max_length=30)),
                ("detail", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("pending_payment", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="transitions", to="payments.pendingpayment")),
            ],
            options={
                "verbose_name": "Cambio de estado",
                "verbose_name_plural": "Cambios de estado",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="BankConfirmation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(max_length=30)),
                ("transaction_id", models.CharField(max_length=120)),
                ("reference", models.CharField(db_index=True, max_length=80)),
                ("amount", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("raw_payload", models.JSONField(blank=True, default=dict)),
                ("received_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Confirmación bancaria",
                "verbose_name_plural": "Confirmaciones bancarias",
                "ordering": ["-received_at"],
                "unique_together": {("provider", "transaction_id")},
            },
        ),
        migrations.CreateModel(
            name="Receipt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("handle", models.CharField(max_length=120, unique=True)),
                ("issued_at", models.DateTimeField(auto_now_add=True)),
                ("payment", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="receipt", to="payments.payment")),
            ],
            options={
                "verbose_name": "Recibo",
                "verbose_name_plural": "Recibos",
                "ordering": ["-issued_at", "-id"],
            },
        ),
    ]

from rest_framework import status
from rest_framework.exceptions import APIException


class DebtNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "El adeudo no existe."
    default_code = "debt_not_found"


class DebtMismatch(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "El adeudo no corresponde al alumno o concepto indicado."
    default_code = "debt_mismatch"


class DebtAlreadyPaid(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "El adeudo ya está pagado."
    default_code = "debt_already_paid"


class AmountMismatch(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "El monto no coincide con el adeudo."
    default_code = "amount_mismatch"


class ReferenceNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Referencia no encontrada."
    default_code = "reference_not_found"


class ReconciliationConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "La confirmación no coincide con la referencia."
    default_code = "reconciliation_conflict"


class InvalidStatusTransition(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Transición de estado no permitida."
    default_code = "invalid_status_transition"

    def __init__(self, from_status=None, to_status=None, detail=None):
        if detail is None and from_status is not None:
            detail = f"Transición no permitida: {from_status} → {to_status}."
        super().__init__(detail=detail)
        self.from_status = from_status
        self.to_status = to_status


class ReferenceGenerationError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "No se pudo generar una referencia única. Intentá nuevamente."
    default_code = "reference_generation_failed"

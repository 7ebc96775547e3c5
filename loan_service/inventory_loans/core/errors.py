"""Errores de dominio del motor de préstamos.

Cada operación de los servicios termina con un valor o con exactamente uno de
estos errores. La capa de presentación los traduce a mensajes usando ``code``.
"""
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError


class InventoryLoanError(Exception):
    code = "inventory_loan_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(InventoryLoanError):
    """Entrada mal formada: fechas invertidas, cantidades negativas, duplicados"""
    code = "validation_error"

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        fields = ", ".join(e["field"] for e in errors) or "payload"
        return cls(f"Invalid data for: {fields}", {"errors": errors})


class InvalidReferenceError(InventoryLoanError):
    """Una referencia de catálogo o de bien no existe o está desactivada"""
    code = "reference_error"


class NotFoundError(InventoryLoanError):
    code = "not_found"


class CycleError(InventoryLoanError):
    """El padre propuesto crearía un ciclo en la jerarquía"""
    code = "cycle_error"


class CapacityError(InventoryLoanError):
    """No hay unidades libres del bien en la ventana solicitada"""
    code = "capacity_error"


class DenyListError(InventoryLoanError):
    """El solicitante tiene una sanción vigente en la lista negra"""
    code = "deny_list_error"


class InvalidStateError(InventoryLoanError):
    code = "invalid_state"

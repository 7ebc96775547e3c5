from typing import Any, Type, TypeVar, Union
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from inventory_loans.core.errors import ValidationError
from inventory_loans.models.enums import CatalogType

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_payload(schema: Type[SchemaT], data: Union[SchemaT, BaseModel, dict]) -> SchemaT:
    """Validar un payload (modelo pydantic o dict) contra el esquema esperado.

    Los errores de pydantic se convierten en ``ValidationError`` del dominio.
    Para los modelos se conservan solo los campos asignados, así los parches
    parciales siguen distinguiendo "no enviado" de "enviado como nulo".
    """
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    if not isinstance(data, dict):
        raise ValidationError(f"Expected a mapping for {schema.__name__}", {"received": type(data).__name__})
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


def parse_catalog_type(entity_type: Any) -> CatalogType:
    try:
        return CatalogType(entity_type)
    except ValueError:
        raise ValidationError(
            f"Unknown catalog type: {entity_type}",
            {"allowed": [t.value for t in CatalogType]},
        ) from None

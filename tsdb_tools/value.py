"""
Modelo de valores de line protocol.

Un valor de tag o de campo es siempre uno de estos cinco casos: entero con
signo de 64 bits, entero sin signo de 64 bits, float de 64 bits, cadena o
booleano.
"""

from enum import Enum
from typing import Union

from pydantic import (
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1


class ValueKind(str, Enum):
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT64 = "float64"
    STRING = "string"
    BOOLEAN = "boolean"


class Value(BaseModel):
    """
    Valor tipado de un tag o de un campo.

    :param kind: Caso del valor.
    :type kind: ValueKind
    :param data: Dato en su tipo nativo de Python.
    :type data: bool, int, float or str
    """

    model_config = ConfigDict(frozen=True)

    kind: ValueKind
    data: Union[StrictBool, StrictInt, StrictFloat, StrictStr]

    @model_validator(mode="after")
    def _check_data(self):
        kind, data = self.kind, self.data
        if kind is ValueKind.BOOLEAN:
            ok = isinstance(data, bool)
        elif kind is ValueKind.STRING:
            ok = isinstance(data, str)
        elif kind is ValueKind.FLOAT64:
            ok = isinstance(data, float)
        elif kind is ValueKind.INT64:
            ok = (
                isinstance(data, int)
                and not isinstance(data, bool)
                and INT64_MIN <= data <= INT64_MAX
            )
        else:
            ok = (
                isinstance(data, int)
                and not isinstance(data, bool)
                and 0 <= data <= UINT64_MAX
            )
        if not ok:
            raise ValueError(
                f"El dato {data!r} no es válido para un valor {kind.value}"
            )
        return self

    @classmethod
    def int64(cls, data: int) -> "Value":
        return cls(kind=ValueKind.INT64, data=data)

    @classmethod
    def uint64(cls, data: int) -> "Value":
        return cls(kind=ValueKind.UINT64, data=data)

    @classmethod
    def float64(cls, data: float) -> "Value":
        return cls(kind=ValueKind.FLOAT64, data=data)

    @classmethod
    def string(cls, data: str) -> "Value":
        return cls(kind=ValueKind.STRING, data=data)

    @classmethod
    def boolean(cls, data: bool) -> "Value":
        return cls(kind=ValueKind.BOOLEAN, data=data)

    @classmethod
    def from_tag(cls, text: str) -> "Value":
        """Los valores de tag son siempre cadenas."""
        return cls.string(text)

    @classmethod
    def from_field(cls, kind: ValueKind, data) -> "Value":
        """Convierte un campo decodificado 1:1, sin coerciones."""
        return cls(kind=kind, data=data)

    def to_cell(self) -> str:
        """
        Texto natural del valor para una celda CSV.

        Las cadenas se devuelven sin comillas: el escritor CSV se encarga de
        entrecomillar cuando haga falta.
        """
        if self.kind is ValueKind.BOOLEAN:
            return "true" if self.data else "false"
        if self.kind is ValueKind.FLOAT64:
            # repr() da '1e+16' y '1e-07'; se normaliza el exponente a '1e16', '1e-7'
            text = repr(self.data)
            mantissa, sep, exponent = text.partition("e")
            if sep:
                text = f"{mantissa}e{int(exponent)}"
            return text
        return str(self.data)

"""
Excepciones de tsdb-tools.

Todas las excepciones de conversión heredan de :class:`ConversionError`. Ninguna
se reintenta ni se ignora: el primer error aborta la conversión en curso y se
propaga hasta la CLI, que termina con un código de salida distinto de cero.
"""


class ConversionError(Exception):
    """Error base para cualquier fallo durante una conversión."""


class LineParseError(ConversionError):
    """
    Línea de line protocol mal formada.

    :param lineno: Número de línea (empezando en 1) dentro de la entrada.
    :type lineno: int
    :param line: Texto de la línea tal como se leyó.
    :type line: str
    :param reason: Descripción del problema encontrado.
    :type reason: str
    """

    def __init__(self, lineno, line, reason):
        self.lineno = lineno
        self.line = line
        self.reason = reason
        super().__init__(f"Línea {lineno} no válida ({reason}): {line!r}")


class SchemaError(ConversionError):
    """El CSV no cuadra con su cabecera o no tiene columnas de campo."""


class TimestampTypeError(ConversionError, ValueError):
    """Una celda de timestamp no se puede interpretar como entero."""


class ConfigurationError(Exception):
    """Archivo de configuración ausente, ilegible o con valores no válidos."""

"""
Conversión de CSV a line protocol.

Cada columna de la cabecera se clasifica una única vez como tag, timestamp o
campo. Después se emite una línea por fila de datos::

    medicion,tag=valor campo=valor,campo=valor timestamp_ns

El timestamp del CSV se interpreta en milisegundos desde epoch y se convierte a
nanosegundos. Los campos numéricos se escriben tal cual y el resto entre
comillas dobles.
"""

import csv
import logging
import math
from enum import Enum
from typing import FrozenSet, Iterator, List, Optional, Sequence, TextIO

from pydantic import BaseModel, ConfigDict

from .errors import SchemaError, TimestampTypeError
from .line_protocol import INTEGER_RE, escape_key, escape_measurement, quote_string
from .value import INT64_MAX, INT64_MIN

logger = logging.getLogger(__name__)

NANOS_PER_MILLI = 1_000_000


class CsvOptions(BaseModel):
    """
    Configuración de la conversión CSV -> line protocol.

    :param timestamp_column: Nombre de la columna con el timestamp en milisegundos.
    :type timestamp_column: str
    :param tag_columns: Nombres de las columnas que se emiten como tags.
    :type tag_columns: FrozenSet[str]
    """

    model_config = ConfigDict(frozen=True)

    timestamp_column: str = "timestamp"
    tag_columns: FrozenSet[str] = frozenset()


class ColumnKind(str, Enum):
    TAG = "tag"
    TIMESTAMP = "timestamp"
    FIELD = "field"


class ColumnClassification:
    """Clasificación de las columnas de una cabecera CSV."""

    def __init__(self, header: Sequence[str], kinds: Sequence[ColumnKind]):
        self.header = list(header)
        self.kinds = list(kinds)
        self.tag_indexes = self._indexes(ColumnKind.TAG)
        self.field_indexes = self._indexes(ColumnKind.FIELD)
        timestamps = self._indexes(ColumnKind.TIMESTAMP)
        self.timestamp_index: Optional[int] = timestamps[0] if timestamps else None

    def _indexes(self, kind):
        return [i for i, k in enumerate(self.kinds) if k is kind]

    @classmethod
    def from_header(
        cls, header: Sequence[str], options: CsvOptions
    ) -> "ColumnClassification":
        """
        Clasifica cada columna: tag si está en ``tag_columns``, timestamp si
        coincide con ``timestamp_column`` y campo en cualquier otro caso.

        :raises SchemaError: Si más de una columna coincide con el timestamp.
        """
        kinds = []
        for name in header:
            if name in options.tag_columns:
                kinds.append(ColumnKind.TAG)
            elif name == options.timestamp_column:
                kinds.append(ColumnKind.TIMESTAMP)
            else:
                kinds.append(ColumnKind.FIELD)

        if kinds.count(ColumnKind.TIMESTAMP) > 1:
            raise SchemaError(
                f"La columna de timestamp '{options.timestamp_column}' aparece "
                f"{kinds.count(ColumnKind.TIMESTAMP)} veces en la cabecera"
            )
        if ColumnKind.TIMESTAMP not in kinds:
            logger.debug(
                f"No hay columna '{options.timestamp_column}' en la cabecera; "
                "las líneas se emitirán sin timestamp."
            )
        return cls(header, kinds)


def is_numeric(cell: str) -> bool:
    """True si la celda es un número finito que puede ir sin comillas."""
    if not cell or cell != cell.strip() or "_" in cell:
        return False
    try:
        number = float(cell)
    except ValueError:
        return False
    return math.isfinite(number)


def render_field(cell: str) -> str:
    if is_numeric(cell):
        return cell
    return quote_string(cell)


def millis_to_nanos(cell: str) -> int:
    """
    Convierte un timestamp en milisegundos (texto) a nanosegundos.

    :raises TimestampTypeError: Si la celda no es un entero o el resultado no
        cabe en 64 bits.
    """
    if not INTEGER_RE.fullmatch(cell):
        raise TimestampTypeError(f"Timestamp no entero: {cell!r}")
    nanos = int(cell) * NANOS_PER_MILLI
    if not INT64_MIN <= nanos <= INT64_MAX:
        raise TimestampTypeError(f"Timestamp fuera de rango: {cell!r}")
    return nanos


def _check_single_line(text: str, what: str) -> None:
    """Los nombres y valores de tag no pueden partir la línea en dos."""
    if "\n" in text or "\r" in text:
        raise SchemaError(f"{what} contiene un salto de línea: {text!r}")


def _format_line(
    measurement: str, row: List[str], columns: ColumnClassification
) -> str:
    header = columns.header
    parts = [escape_measurement(measurement)]

    for i in columns.tag_indexes:
        _check_single_line(row[i], f"El valor del tag '{header[i]}'")
        # El line protocol no admite valores de tag vacíos
        if row[i]:
            parts.append(f",{escape_key(header[i])}={escape_key(row[i])}")

    fields = ",".join(
        f"{escape_key(header[i])}={render_field(row[i])}"
        for i in columns.field_indexes
    )
    parts.append(f" {fields}")

    if columns.timestamp_index is not None:
        parts.append(f" {millis_to_nanos(row[columns.timestamp_index])}")

    parts.append("\n")
    return "".join(parts)


def iter_csv_lines(
    source: TextIO, measurement: str, options: CsvOptions
) -> Iterator[str]:
    """
    Genera una línea de line protocol por cada fila de datos del CSV.

    :param source: Flujo de texto con el CSV (la primera fila es la cabecera).
    :type source: TextIO
    :param measurement: Nombre de la medición de todas las líneas.
    :type measurement: str
    :param options: Columna de timestamp y conjunto de columnas tag.
    :type options: CsvOptions
    :raises SchemaError: Si una fila no tiene tantas celdas como la cabecera o
        no hay columnas de campo.
    :raises TimestampTypeError: Si una celda de timestamp no es un entero.
    """
    reader = csv.reader(source)
    header = next(reader, None)
    if header is None:
        logger.warning(f"CSV vacío para la medición '{measurement}'.")
        return

    columns = ColumnClassification.from_header(header, options)
    _check_single_line(measurement, "El nombre de la medición")
    for i in columns.tag_indexes + columns.field_indexes:
        _check_single_line(header[i], "El nombre de columna")

    for row in reader:
        if not row:
            continue
        if len(row) != len(header):
            raise SchemaError(
                f"La fila {reader.line_num} de '{measurement}' tiene {len(row)} "
                f"celdas y la cabecera {len(header)}"
            )
        if not columns.field_indexes:
            raise SchemaError(
                f"La fila {reader.line_num} de '{measurement}' no tiene "
                "columnas de campo"
            )
        yield _format_line(measurement, row, columns)


def csv_to_line_protocol(
    source: TextIO, dest: TextIO, measurement: str, options: CsvOptions
) -> int:
    """Escribe en ``dest`` las líneas de un CSV y devuelve cuántas se escribieron."""
    lines = 0
    for line in iter_csv_lines(source, measurement, options):
        dest.write(line)
        lines += 1
    logger.debug(f"Medición '{measurement}': {lines} líneas escritas.")
    return lines

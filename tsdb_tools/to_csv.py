"""
Conversión de line protocol a CSV.

Cada punto se aplana en una fila: valores de tags, valores de campos y, si el
punto trae timestamp, una última columna con la fecha en RFC 3339 (UTC). No se
escribe cabecera.
"""

import csv
import logging
from datetime import datetime, timedelta, timezone
from typing import List, TextIO

from .line_protocol import Point, parse_line

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
NANOS_PER_SECOND = 1_000_000_000


def format_rfc3339_nanos(timestamp_ns: int) -> str:
    """
    Convierte nanosegundos desde epoch a RFC 3339 con offset ``+00:00``.

    La parte fraccionaria usa 3, 6 o 9 dígitos según la precisión que haga
    falta para no perder información, y se omite si es cero.
    """
    seconds, nanos = divmod(timestamp_ns, NANOS_PER_SECOND)
    dt = EPOCH + timedelta(seconds=seconds)
    text = dt.strftime("%Y-%m-%dT%H:%M:%S")

    if nanos:
        if nanos % 1_000_000 == 0:
            text += f".{nanos // 1_000_000:03d}"
        elif nanos % 1_000 == 0:
            text += f".{nanos // 1_000:06d}"
        else:
            text += f".{nanos:09d}"

    return text + "+00:00"


def point_to_row(point: Point) -> List[str]:
    """Orden fijo de columnas: tags, campos y timestamp (si existe)."""
    row = [value.to_cell() for value in point.tag_values()]
    row.extend(value.to_cell() for value in point.field_values())
    if point.timestamp is not None:
        row.append(format_rfc3339_nanos(point.timestamp))
    return row


def line_protocol_to_csv(source: TextIO, dest: TextIO) -> int:
    """
    Lee line protocol línea a línea y escribe una fila CSV por punto.

    El primer error de decodificación aborta la conversión completa.

    :param source: Flujo de texto con line protocol.
    :type source: TextIO
    :param dest: Flujo de texto donde se escribe el CSV.
    :type dest: TextIO
    :return: Número de filas escritas.
    :rtype: int
    :raises LineParseError: Si alguna línea no es válida.
    """
    writer = csv.writer(dest, lineterminator="\n")
    rows = 0

    for lineno, line in enumerate(source, start=1):
        point = parse_line(line, lineno)
        if point is None:
            continue
        writer.writerow(point_to_row(point))
        rows += 1

    dest.flush()
    logger.info(f"Conversión a CSV completada: {rows} filas escritas.")
    return rows

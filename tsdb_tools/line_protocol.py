"""
Decodificación y escapado del line protocol de InfluxDB.

Formato de una línea::

    measurement[,tag=valor,...] campo=valor[,campo=valor,...][ timestamp]

Las líneas vacías y las que empiezan por ``#`` son comentarios y no producen
ningún punto. Cualquier otra línea mal formada lanza :class:`LineParseError`.
"""

import io
import logging
import re
from typing import Iterator, List, Optional, Tuple

from influxdb.line_protocol import quote_ident
from pydantic import BaseModel, ConfigDict, Field

from .errors import LineParseError
from .value import INT64_MAX, INT64_MIN, UINT64_MAX, Value, ValueKind

logger = logging.getLogger(__name__)

# Separadores y caracteres que admiten escape con '\' según la zona de la línea
MEASUREMENT_STOPS = ", "
KEY_STOPS = ",= "
MEASUREMENT_ESCAPES = frozenset(", \\")
KEY_ESCAPES = frozenset(",= \\")
STRING_ESCAPES = frozenset('"\\')

TRUE_LITERALS = frozenset(["t", "T", "true", "True", "TRUE"])
FALSE_LITERALS = frozenset(["f", "F", "false", "False", "FALSE"])

INTEGER_RE = re.compile(r"[-+]?\d+")
UNSIGNED_RE = re.compile(r"\d+")
FLOAT_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
WHITESPACE = " \t"


class Point(BaseModel):
    """
    Punto decodificado de una línea de line protocol.

    :param measurement: Nombre de la medición.
    :type measurement: str
    :param tags: Pares (clave, valor) de tags en el orden de la línea.
    :type tags: List[Tuple[str, str]]
    :param fields: Pares (clave, valor tipado) de campos en el orden de la línea.
    :type fields: List[Tuple[str, Value]]
    :param timestamp: Timestamp en nanosegundos desde epoch, si lo hay.
    :type timestamp: int, optional
    """

    model_config = ConfigDict(frozen=True)

    measurement: str = Field(min_length=1)
    tags: List[Tuple[str, str]] = []
    fields: List[Tuple[str, Value]] = Field(min_length=1)
    timestamp: Optional[int] = None

    def tag_values(self) -> List[Value]:
        return [Value.from_tag(value) for _, value in self.tags]

    def field_values(self) -> List[Value]:
        return [value for _, value in self.fields]


class _LineScanner:
    """Recorre una línea carácter a carácter resolviendo los escapes."""

    def __init__(self, line, lineno):
        self.line = line
        self.lineno = lineno
        self.pos = 0

    def error(self, reason):
        return LineParseError(self.lineno, self.line, reason)

    def at_end(self):
        return self.pos >= len(self.line)

    def peek(self):
        return None if self.at_end() else self.line[self.pos]

    def expect(self, char, reason):
        if self.peek() != char:
            raise self.error(reason)
        self.pos += 1

    def skip_whitespace(self):
        start = self.pos
        while not self.at_end() and self.line[self.pos] in WHITESPACE:
            self.pos += 1
        return self.pos - start

    def read_until(self, stops, escapes):
        """Lee hasta un carácter de ``stops`` no escapado."""
        chars = []
        line = self.line
        while self.pos < len(line):
            char = line[self.pos]
            if char == "\\" and self.pos + 1 < len(line):
                following = line[self.pos + 1]
                if following in escapes:
                    chars.append(following)
                    self.pos += 2
                    continue
            if char in stops:
                break
            chars.append(char)
            self.pos += 1
        return "".join(chars)

    def read_quoted(self):
        """Lee una cadena entre comillas dobles; el cursor está en la comilla."""
        self.pos += 1
        chars = []
        line = self.line
        while self.pos < len(line):
            char = line[self.pos]
            if char == "\\" and self.pos + 1 < len(line):
                following = line[self.pos + 1]
                if following in STRING_ESCAPES:
                    chars.append(following)
                    self.pos += 2
                    continue
            if char == '"':
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1
        raise self.error("cadena sin comilla de cierre")


def _parse_field_value(raw: str, scanner: _LineScanner) -> Value:
    """Interpreta el valor sin comillas de un campo según su sufijo."""
    if raw in TRUE_LITERALS:
        return Value.from_field(ValueKind.BOOLEAN, True)
    if raw in FALSE_LITERALS:
        return Value.from_field(ValueKind.BOOLEAN, False)

    if raw.endswith("i"):
        digits = raw[:-1]
        if INTEGER_RE.fullmatch(digits):
            number = int(digits)
            if not INT64_MIN <= number <= INT64_MAX:
                raise scanner.error(f"entero fuera de rango: {raw}")
            return Value.from_field(ValueKind.INT64, number)
        raise scanner.error(f"entero no válido: {raw}")

    if raw.endswith("u"):
        digits = raw[:-1]
        if UNSIGNED_RE.fullmatch(digits):
            number = int(digits)
            if number > UINT64_MAX:
                raise scanner.error(f"entero sin signo fuera de rango: {raw}")
            return Value.from_field(ValueKind.UINT64, number)
        raise scanner.error(f"entero sin signo no válido: {raw}")

    if FLOAT_RE.fullmatch(raw):
        return Value.from_field(ValueKind.FLOAT64, float(raw))

    raise scanner.error(f"valor de campo no válido: {raw!r}")


def _parse_tags(scanner: _LineScanner) -> List[Tuple[str, str]]:
    tags = []
    while scanner.peek() == ",":
        scanner.pos += 1
        key = scanner.read_until(KEY_STOPS, KEY_ESCAPES)
        if not key:
            raise scanner.error("clave de tag vacía")
        scanner.expect("=", f"falta '=' en el tag '{key}'")
        value = scanner.read_until(", ", KEY_ESCAPES)
        if not value:
            raise scanner.error(f"valor vacío en el tag '{key}'")
        tags.append((key, value))
    return tags


def _parse_fields(scanner: _LineScanner) -> List[Tuple[str, Value]]:
    fields = []
    while True:
        key = scanner.read_until(KEY_STOPS, KEY_ESCAPES)
        if not key:
            raise scanner.error("clave de campo vacía")
        scanner.expect("=", f"falta '=' en el campo '{key}'")

        if scanner.peek() == '"':
            value = Value.from_field(ValueKind.STRING, scanner.read_quoted())
        else:
            raw = scanner.read_until(", ", ())
            if not raw:
                raise scanner.error(f"valor vacío en el campo '{key}'")
            value = _parse_field_value(raw, scanner)
        fields.append((key, value))

        if scanner.peek() != ",":
            return fields
        scanner.pos += 1


def _parse_timestamp(scanner: _LineScanner) -> Optional[int]:
    start = scanner.pos
    while not scanner.at_end() and scanner.peek() not in WHITESPACE:
        scanner.pos += 1
    raw = scanner.line[start : scanner.pos]
    if not raw:
        return None
    if not INTEGER_RE.fullmatch(raw):
        raise scanner.error(f"timestamp no válido: {raw!r}")
    timestamp = int(raw)
    if not INT64_MIN <= timestamp <= INT64_MAX:
        raise scanner.error(f"timestamp fuera de rango: {raw}")
    return timestamp


def parse_line(line: str, lineno: int = 1) -> Optional[Point]:
    """
    Decodifica una única línea de line protocol.

    :param line: Línea de texto, con o sin salto de línea final.
    :type line: str
    :param lineno: Número de línea usado en los mensajes de error.
    :type lineno: int
    :return: El punto decodificado, o None si la línea es un comentario o está vacía.
    :rtype: Optional[Point]
    :raises LineParseError: Si la línea no respeta la gramática.
    """
    line = line.rstrip("\r\n")
    scanner = _LineScanner(line, lineno)
    scanner.skip_whitespace()
    if scanner.at_end() or scanner.peek() == "#":
        return None

    measurement = scanner.read_until(MEASUREMENT_STOPS, MEASUREMENT_ESCAPES)
    if not measurement:
        raise scanner.error("falta el nombre de la medición")

    tags = _parse_tags(scanner)

    if scanner.skip_whitespace() == 0 or scanner.at_end():
        raise scanner.error("faltan los campos")

    fields = _parse_fields(scanner)

    timestamp = None
    if not scanner.at_end():
        if scanner.skip_whitespace() == 0:
            raise scanner.error(
                f"carácter inesperado tras los campos: {scanner.peek()!r}"
            )
        timestamp = _parse_timestamp(scanner)
        scanner.skip_whitespace()
        if not scanner.at_end():
            raise scanner.error("contenido inesperado tras el timestamp")

    return Point(
        measurement=measurement, tags=tags, fields=fields, timestamp=timestamp
    )


def parse_lines(text: str, first_lineno: int = 1) -> Iterator[Point]:
    """
    Decodifica un bloque de texto línea a línea, omitiendo comentarios.

    Solo ``\\n`` separa líneas, igual que al leer un flujo.
    """
    for offset, line in enumerate(io.StringIO(text)):
        point = parse_line(line, first_lineno + offset)
        if point is not None:
            yield point


def escape_measurement(name: str) -> str:
    """Escapa barras invertidas, comas y espacios de un nombre de medición."""
    return name.replace("\\", "\\\\").replace(",", "\\,").replace(" ", "\\ ")


def escape_key(key: str) -> str:
    """Escapa claves de tag/campo y valores de tag."""
    return (
        key.replace("\\", "\\\\")
        .replace(",", "\\,")
        .replace("=", "\\=")
        .replace(" ", "\\ ")
    )


def quote_string(value: str) -> str:
    """Entrecomilla un valor de campo de tipo cadena."""
    return quote_ident(value)

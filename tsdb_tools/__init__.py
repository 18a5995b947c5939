"""Utilidades para convertir series temporales entre line protocol y CSV."""

from .aggregator import directory_to_line_protocol, measurement_name
from .errors import (
    ConfigurationError,
    ConversionError,
    LineParseError,
    SchemaError,
    TimestampTypeError,
)
from .line_protocol import Point, parse_line, parse_lines
from .to_csv import format_rfc3339_nanos, line_protocol_to_csv
from .to_line import CsvOptions, csv_to_line_protocol, iter_csv_lines
from .value import Value, ValueKind

__version__ = "0.1.0"

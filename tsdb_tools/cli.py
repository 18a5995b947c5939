"""
Línea de comandos de tsdb-tools
===============================

Utilidades para bases de datos de series temporales. El grupo ``influx``
convierte entre line protocol de InfluxDB y CSV, y puede volcar CSV
directamente en un servidor InfluxDB.
"""

import argparse
import contextlib
import logging
import sys
from pathlib import Path

from .aggregator import iter_path_lines, path_to_line_protocol
from .config import Config
from .errors import ConfigurationError, ConversionError
from .influx_client import InfluxClient
from .logger_config import setup_logging
from .to_csv import line_protocol_to_csv

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def open_input(path):
    """Abre la entrada; ``-`` es stdin y no se cierra."""
    if path == "-":
        yield sys.stdin
    else:
        with open(path, "r", newline="", encoding="utf-8-sig") as f:
            yield f


@contextlib.contextmanager
def open_output(path):
    """Abre la salida; ``-`` es stdout y no se cierra."""
    if path == "-":
        yield sys.stdout
    else:
        with open(path, "w", newline="", encoding="utf-8") as f:
            yield f


def _add_csv_options(parser):
    parser.add_argument(
        "--timestamp-column",
        help="Columna con el timestamp en milisegundos (por defecto: timestamp)",
    )
    parser.add_argument(
        "--tag",
        dest="tags",
        action="append",
        metavar="NAME",
        help="Columna que se emite como tag (repetible)",
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="tsdb-tools",
        description="TSDB utilities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tsdb-tools influx to-csv -i cpu.lp -o cpu.csv
  tsdb-tools influx to-line -i metrics/ -o metrics.lp --tag hostname
  tsdb-tools -c config.yaml influx write -i metrics/ --database telegraf
        """,
    )
    parser.add_argument("--config", "-c", help="Archivo de configuración YAML")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    parser.add_argument("--log-file", help="Archivo de log adicional")

    targets = parser.add_subparsers(dest="target", required=True)
    influx = targets.add_parser("influx", help="Subcommands for InfluxDB")
    commands = influx.add_subparsers(dest="command", required=True)

    to_csv = commands.add_parser("to-csv", help="Line protocol to CSV")
    to_csv.add_argument("-i", "--input", required=True, help="Line protocol file")
    to_csv.add_argument("-o", "--output", required=True, help="CSV file")

    to_line = commands.add_parser("to-line", help="CSV to line protocol")
    to_line.add_argument(
        "-i", "--input", required=True, help="CSV file or directory of CSV files"
    )
    to_line.add_argument("-o", "--output", required=True, help="Line protocol file")
    _add_csv_options(to_line)

    write = commands.add_parser("write", help="CSV to an InfluxDB database")
    write.add_argument(
        "-i", "--input", required=True, help="CSV file or directory of CSV files"
    )
    write.add_argument("--url", help="URL del servidor InfluxDB")
    write.add_argument("--database", help="Base de datos de destino")
    write.add_argument("--batch-size", type=int, help="Líneas por petición")
    _add_csv_options(write)

    return parser


def run_to_csv(args, config):
    with open_input(args.input) as source, open_output(args.output) as dest:
        line_protocol_to_csv(source, dest)


def _check_output_outside(input_path, output_path):
    """La salida no puede ser un archivo más del directorio que se convierte."""
    if output_path == "-" or not Path(input_path).is_dir():
        return
    directory = Path(input_path).resolve()
    if directory in Path(output_path).resolve().parents:
        raise ConfigurationError(
            f"La salida '{output_path}' no puede estar dentro del directorio "
            f"de entrada '{input_path}'."
        )


def run_to_line(args, config):
    options = config.csv_options(args.timestamp_column, args.tags)
    _check_output_outside(args.input, args.output)
    with open_output(args.output) as dest:
        path_to_line_protocol(args.input, dest, options)


def run_write(args, config):
    options = config.csv_options(args.timestamp_column, args.tags)
    database = args.database or config.get("influxdb.database")
    if not database:
        raise ConfigurationError(
            "Se requiere una base de datos ('--database' o 'influxdb.database')."
        )

    client = InfluxClient(
        url=args.url or config.get("influxdb.url"),
        user=config.get("influxdb.user", ""),
        password=config.get("influxdb.password", ""),
        timeout=config.get("influxdb.timeout", 20),
        ssl=config.get("influxdb.ssl", False),
        verify_ssl=config.get("influxdb.verify_ssl", True),
    )
    client.create_database(database)
    client.write_lines(
        iter_path_lines(args.input, options),
        database,
        batch_size=args.batch_size or config.get("influxdb.batch_size"),
    )


COMMANDS = {
    "to-csv": run_to_csv,
    "to-line": run_to_line,
    "write": run_write,
}


def main(argv=None):
    """Función principal. Devuelve el código de salida."""
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "INFO", args.log_file)

    try:
        config = Config(args.config)
        setup_logging(
            "DEBUG" if args.verbose else config.get("options.log_level", "INFO"),
            args.log_file or config.get("options.log_file"),
            process_name="tsdb-tools",
            rotation_config=config.get("options.log_rotation", {}),
            loki_config=config.get("options.loki", {}),
        )
        COMMANDS[args.command](args, config)
    except ConfigurationError as e:
        logger.critical(f"Error de configuración: {e}")
        return 1
    except ConversionError as e:
        logger.critical(f"La conversión ha fallado: {e}")
        return 1
    except (OSError, ValueError) as e:
        # ConnectionError es un OSError; ValueError llega de una URL no válida
        logger.critical(f"No se pudo completar la operación: {e}")
        return 1
    except Exception as e:
        logger.critical(f"Ha ocurrido un error inesperado: {e}", exc_info=True)
        return 1

    return 0

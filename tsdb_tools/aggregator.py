"""
Conversión de un directorio de CSV a line protocol.

Cada archivo es una medición cuyo nombre es el del archivo sin extensión. Los
archivos se ordenan por ruta y se procesan completos, uno detrás de otro.
"""

import logging
from pathlib import Path
from typing import Iterator, List, TextIO, Union

from .to_line import CsvOptions, iter_csv_lines

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def measurement_name(path: PathLike) -> str:
    """Nombre de la medición: último componente de la ruta sin extensión."""
    return Path(path).stem


def list_measurement_files(directory: PathLike) -> List[Path]:
    """
    Lista los archivos del directorio ordenados por ruta.

    Los subdirectorios se ignoran.

    :param directory: Directorio con los CSV.
    :type directory: str or Path
    :return: Rutas de los archivos en orden de procesamiento.
    :rtype: List[Path]
    :raises FileNotFoundError: Si el directorio no existe.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"No se encuentra el directorio: {directory}")

    files = []
    for entry in directory.iterdir():
        if entry.is_file():
            files.append(entry)
        else:
            logger.warning(f"Se ignora '{entry}': no es un archivo.")

    return sorted(files, key=str)


def iter_file_lines(path: PathLike, options: CsvOptions) -> Iterator[str]:
    """Genera las líneas de un único CSV; el archivo se cierra siempre."""
    measurement = measurement_name(path)
    logger.info(f"Procesando '{path}' como medición '{measurement}'")
    with open(path, "r", newline="", encoding="utf-8-sig") as f:
        yield from iter_csv_lines(f, measurement, options)


def iter_directory_lines(
    directory: PathLike, options: CsvOptions
) -> Iterator[str]:
    files = list_measurement_files(directory)
    logger.info(
        f"Se encontraron {len(files)} archivos en '{directory}': "
        f"{[f.name for f in files]}"
    )
    for path in files:
        yield from iter_file_lines(path, options)


def iter_path_lines(path: PathLike, options: CsvOptions) -> Iterator[str]:
    """Acepta tanto un archivo CSV como un directorio de archivos CSV."""
    if Path(path).is_dir():
        return iter_directory_lines(path, options)
    return iter_file_lines(path, options)


def _write_lines(lines: Iterator[str], dest: TextIO) -> int:
    count = 0
    for line in lines:
        dest.write(line)
        count += 1
    dest.flush()
    return count


def directory_to_line_protocol(
    directory: PathLike, dest: TextIO, options: CsvOptions
) -> int:
    """Escribe en ``dest`` todas las mediciones del directorio, en orden."""
    count = _write_lines(iter_directory_lines(directory, options), dest)
    logger.info(f"Conversión a line protocol completada: {count} líneas.")
    return count


def path_to_line_protocol(
    path: PathLike, dest: TextIO, options: CsvOptions
) -> int:
    count = _write_lines(iter_path_lines(path, options), dest)
    logger.info(f"Conversión a line protocol completada: {count} líneas.")
    return count

import logging
import os
import re
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .errors import ConfigurationError
from .to_line import CsvOptions

logger = logging.getLogger(__name__)

DEFAULTS = {
    "csv": {"timestamp_column": "timestamp", "tag_columns": []},
    "influxdb": {
        "url": "http://localhost:8086",
        "user": "",
        "password": "",
        "database": None,
        "timeout": 20,
        "ssl": False,
        "verify_ssl": True,
        "batch_size": 5000,
    },
    "options": {"log_level": "INFO", "log_file": None},
}


ENV_VAR_PATTERN = re.compile(r"\$\{([^}^{]+)\}|\$([a-zA-Z_][a-zA-Z0-9_]*)")


def replace_env_vars(value: str) -> str:
    """
    Sustituye los patrones ``${VAR}``, ``$VAR`` y ``${VAR:-defecto}`` por el
    valor de la variable de entorno.

    :param value: Cadena con referencias a variables de entorno
    :return: Cadena con las variables sustituidas
    """

    def replace_var(match):
        env_var = match.group(1) or match.group(2)
        if ":-" in env_var:
            env_var, default = env_var.split(":-", 1)
        else:
            default = ""
        return os.getenv(env_var, default)

    return ENV_VAR_PATTERN.sub(replace_var, value)


def process_config(config_dict):
    """
    Sustituye las variables de entorno en todos los valores de texto.

    :param config_dict: Diccionario de configuración
    :return: Diccionario de configuración procesado
    """
    result = {}

    for key, value in config_dict.items():
        if isinstance(value, dict):
            result[key] = process_config(value)
        elif isinstance(value, list):
            result[key] = [
                process_config(item) if isinstance(item, dict) else
                replace_env_vars(item) if isinstance(item, str) else item
                for item in value
            ]
        elif isinstance(value, str):
            result[key] = replace_env_vars(value)
        else:
            result[key] = value

    return result


def _merge(defaults, overrides):
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """
    Carga y gestiona la configuración de tsdb-tools desde un archivo YAML.

    Sin archivo se usan los valores por defecto.
    """

    def __init__(self, config_path=None):
        self.config_path = Path(config_path) if config_path else None
        self.config = _merge(DEFAULTS, self._load_config())
        self._validate_config()

    def _load_config(self):
        """Carga el archivo de configuración YAML."""
        if self.config_path is None:
            return {}

        logger.info(f"Cargando configuración desde: {self.config_path}")
        if not self.config_path.is_file():
            raise ConfigurationError(
                f"El archivo de configuración no se encuentra en: {self.config_path}"
            )

        load_dotenv()
        with open(self.config_path, "r", encoding="utf-8") as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(
                    f"Error al parsear el archivo YAML: {e}"
                ) from e

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                "La raíz del archivo de configuración debe ser un diccionario."
            )
        return process_config(loaded)

    def _validate_config(self):
        """Valida los tipos de las claves que usa la conversión."""
        for section in DEFAULTS:
            if not isinstance(self.config.get(section), dict):
                raise ConfigurationError(
                    f"La sección '{section}' debe ser un diccionario."
                )

        timestamp_column = self.get("csv.timestamp_column")
        if not isinstance(timestamp_column, str) or not timestamp_column:
            raise ConfigurationError(
                "'csv.timestamp_column' debe ser una cadena no vacía."
            )

        tag_columns = self.get("csv.tag_columns")
        if not isinstance(tag_columns, list) or not all(
            isinstance(tag, str) for tag in tag_columns
        ):
            raise ConfigurationError(
                "'csv.tag_columns' debe ser una lista de cadenas."
            )

        batch_size = self.get("influxdb.batch_size")
        if (
            not isinstance(batch_size, int)
            or isinstance(batch_size, bool)
            or batch_size <= 0
        ):
            raise ConfigurationError(
                "'influxdb.batch_size' debe ser un entero positivo."
            )

        logger.debug("Configuración cargada y validada correctamente.")

    def get(self, key_path, default=None):
        """
        Obtiene un valor de la configuración usando una ruta de claves anidadas.
        Ejemplo: get('csv.timestamp_column')
        """
        keys = key_path.split(".")
        value = self.config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def csv_options(self, timestamp_column=None, tag_columns=None):
        """Construye las opciones CSV; los argumentos tienen prioridad."""
        return CsvOptions(
            timestamp_column=timestamp_column
            or self.get("csv.timestamp_column"),
            tag_columns=frozenset(
                tag_columns
                if tag_columns is not None
                else self.get("csv.tag_columns")
            ),
        )

import logging
import sys
from logging import FileHandler
from logging.handlers import TimedRotatingFileHandler

from logging_loki import LokiHandler


def setup_logging(
    log_level_str,
    log_file=None,
    process_name=None,
    rotation_config=None,
    loki_config=None,
):
    """
    Configura el logging para la aplicación.

    La consola usa stderr: stdout puede ser la salida de la conversión.
    """
    if rotation_config is None:
        rotation_config = {}
    if loki_config is None:
        loki_config = {}

    log_level = getattr(logging, log_level_str.upper(), logging.INFO)

    if process_name:
        log_format = f"%(asctime)s - [{process_name}] - %(name)s - %(levelname)s - %(message)s"
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(log_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Limpiar handlers existentes para evitar duplicados
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            rotation_enabled = rotation_config.get("enabled", False)

            if rotation_enabled:
                backup_count = rotation_config.get("backup_count", 5)
                file_handler = TimedRotatingFileHandler(
                    log_file,
                    when=rotation_config.get("when", "D"),
                    interval=rotation_config.get("interval", 1),
                    backupCount=backup_count,
                    encoding="utf-8",
                )
            else:
                file_handler = FileHandler(log_file, encoding="utf-8")

            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

            if rotation_enabled:
                logging.debug(
                    f"Logging con rotación de tiempo configurado para '{log_file}'. "
                    f"BackupCount={backup_count}"
                )
            else:
                logging.debug(
                    f"Logging sin rotación configurado para '{log_file}'."
                )

        except OSError as e:
            logging.error(
                f"No se pudo configurar el logging en el archivo {log_file}: {e}"
            )
            logging.error("Los logs solo se mostrarán en la consola.")

    if loki_config.get("enabled"):
        loki_url = loki_config.get("url", "loki")
        loki_port = loki_config.get("port", 3100)

        # Las etiquetas base vienen de la config, y añadimos una dinámica
        tags = dict(loki_config.get("tags", {}))
        if process_name:
            tags["process_name"] = process_name

        loki_handler = LokiHandler(
            url=f"http://{loki_url}:{loki_port}/loki/api/v1/push",
            tags=tags,
            version="1",
        )
        loki_handler.setFormatter(formatter)
        root_logger.addHandler(loki_handler)
        logging.debug(f"Logging hacia Loki ({loki_url}:{loki_port}) habilitado.")

    logging.debug(f"Nivel de log establecido en: {log_level_str.upper()}")

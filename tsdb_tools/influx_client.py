import logging
from itertools import islice
from typing import Iterable

from influxdb import InfluxDBClient
from influxdb.exceptions import InfluxDBClientError
from requests.exceptions import ConnectionError as RequestsConnectionError

logger = logging.getLogger(__name__)


class InfluxClient:
    """
    Cliente para escribir line protocol en un servidor InfluxDB 1.x.
    """

    def __init__(
        self, url, user="", password="", timeout=20, ssl=False, verify_ssl=True
    ):
        self.url = url
        self.timeout = timeout

        # Parsear URL para obtener host y puerto
        try:
            _, rest = url.split("://", 1)
            host_part = rest.split("/")[0]  # Ignorar cualquier path en la URL
            if ":" in host_part:
                host, port_str = host_part.split(":")
                port = int(port_str)
            else:
                host = host_part
                port = 443 if ssl else 80
        except ValueError as e:
            logger.error(
                f"URL de InfluxDB no válida: {url}. Formato esperado: http(s)://hostname:puerto"
            )
            raise ValueError(f"URL de InfluxDB no válida: {url}") from e

        self.client = InfluxDBClient(
            host=host,
            port=port,
            username=user,
            password=password,
            timeout=timeout,
            ssl=ssl,
            verify_ssl=verify_ssl,
        )
        self.test_connection()

    def test_connection(self):
        """Prueba la conexión con el servidor InfluxDB."""
        try:
            version = self.client.ping()
            logger.info(
                f"Conexión exitosa a {self.url}. Versión de InfluxDB: {version}"
            )
        except (RequestsConnectionError, InfluxDBClientError) as e:
            raise ConnectionError(
                f"No se pudo conectar a la instancia de InfluxDB en {self.url}: {e}"
            ) from e

    def create_database(self, db_name):
        """Crea la base de datos de destino si no existe."""
        logger.info(f"Verificando/creando base de datos de destino: {db_name}")
        try:
            self.client.create_database(db_name)
        except (RequestsConnectionError, InfluxDBClientError) as e:
            raise ConnectionError(
                f"No se pudo crear/verificar la base de datos '{db_name}': {e}"
            ) from e

    def write_lines(
        self, lines: Iterable[str], database: str, batch_size: int = 5000
    ) -> int:
        """
        Escribe líneas de line protocol por lotes.

        Args:
            lines: Iterable de líneas (con o sin salto de línea final)
            database: Base de datos de destino
            batch_size: Número máximo de líneas por petición

        Returns:
            int: Número de líneas escritas
        """
        written = 0
        iterator = iter(lines)
        while True:
            batch = [line.rstrip("\n") for line in islice(iterator, batch_size)]
            if not batch:
                break
            logger.debug(
                f"Escribiendo {len(batch)} puntos en la base de datos '{database}'"
            )
            try:
                self.client.write_points(
                    batch, database=database, protocol="line"
                )
            except (RequestsConnectionError, InfluxDBClientError) as e:
                raise ConnectionError(
                    f"Error al escribir datos en '{database}': {e}"
                ) from e
            written += len(batch)

        logger.info(f"{written} puntos escritos en '{database}'.")
        return written

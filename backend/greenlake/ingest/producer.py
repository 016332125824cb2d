"""
CSV -> Redis Streams producer for the city's tourism datasets.

Each dataset row becomes one or more messages. Rows that reference a
parent (a hotel, a vehicle type) first emit the parent message, so the
consumer can upsert it before the dependent row arrives.

  rutas_turisticas.csv       (;)  -> routes
  uso_transporte.csv         (,)  -> vehicle-types, transport-usage
  datos_sostenibilidad.csv   (;)  -> hotels, hotel-sustainability
  ocupacion_hotelera.csv     (;)  -> hotels, hotel-occupancy
  opiniones_turisticas.csv   (,)  -> reviews

Numbers are read leniently: the leading numeric part of a cell is used and
a cell without one becomes null. Dates are passed through as written.

Run with:  python -m greenlake.ingest.producer --data-dir /data
"""

import argparse
import asyncio
import csv
import json
import re
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import redis.asyncio as redis

from greenlake.core.config import get_settings
from greenlake.core.logging import get_logger, setup_logging
from greenlake.core.metrics import ingest_published
from greenlake.ingest import topics

logger = get_logger(__name__)
settings = get_settings()

# (topic, key, payload)
Message = Tuple[str, Optional[str], Dict[str, Any]]
RowMapper = Callable[[Dict[str, str]], List[Message]]

_FLOAT_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^[+-]?\d+")


def parse_float(value: Optional[str]) -> Optional[float]:
    match = _FLOAT_PREFIX.match((value or "").strip())
    return float(match.group(0)) if match else None


def parse_int(value: Optional[str]) -> Optional[int]:
    match = _INT_PREFIX.match((value or "").strip())
    return int(match.group(0)) if match else None


def read_csv(path: Path, delimiter: str = ",") -> List[Dict[str, str]]:
    """Rows as dicts keyed by header; cells trimmed, blank lines dropped."""
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        rows = []
        for row in reader:
            cleaned = {(k or "").strip(): (v or "").strip() for k, v in row.items()}
            if any(cleaned.values()):
                rows.append(cleaned)
        return rows


# --- Row mappers -----------------------------------------------------------

def map_route_row(row: Dict[str, str]) -> List[Message]:
    return [(topics.ROUTES, row["ruta_nombre"], {
        "name": row["ruta_nombre"],
        "routeType": row.get("tipo_ruta"),
        "lengthKm": parse_float(row.get("longitud_km")),
        "durationHr": parse_float(row.get("duracion_hr")),
        "popularity": parse_int(row.get("popularidad")),
    })]


def map_transport_row(row: Dict[str, str]) -> List[Message]:
    vehicle = row["tipo_transporte"]
    return [
        (topics.VEHICLE_TYPES, vehicle, {"name": vehicle}),
        (topics.TRANSPORT_USAGE, None, {
            "date": row["fecha"],
            "vehicleType": vehicle,
            "userCount": parse_int(row.get("num_usuarios")),
            "averageTravelTimeMin": parse_float(row.get("tiempo_viaje_promedio_min")),
            "popularRoute": row.get("ruta_popular"),
        }),
    ]


def map_sustainability_row(row: Dict[str, str]) -> List[Message]:
    hotel = row["hotel_nombre"]
    return [
        (topics.HOTELS, hotel, {"name": hotel}),
        (topics.HOTEL_SUSTAINABILITY, hotel, {
            "hotelName": hotel,
            "date": row["fecha"],
            "energyConsumptionKwh": parse_float(row.get("consumo_energia_kwh")),
            "wasteGeneratedKg": parse_float(row.get("residuos_generados_kg")),
            "recyclingPercentage": parse_float(row.get("porcentaje_reciclaje")),
            "waterUsageM3": parse_float(row.get("uso_agua_m3")),
        }),
    ]


def map_occupancy_row(row: Dict[str, str]) -> List[Message]:
    hotel = row["hotel_nombre"]
    return [
        (topics.HOTELS, hotel, {"name": hotel}),
        (topics.HOTEL_OCCUPANCY, hotel, {
            "hotelName": hotel,
            "date": row["fecha"],
            "occupancyRate": parse_float(row.get("tasa_ocupacion")),
            "confirmedBookings": parse_int(row.get("reservas_confirmadas")),
            "cancellations": parse_int(row.get("cancelaciones")),
            "averagePricePerNight": parse_float(row.get("precio_promedio_noche")),
        }),
    ]


def map_review_row(row: Dict[str, str]) -> List[Message]:
    return [(topics.REVIEWS, None, {
        "date": row["fecha"],
        "serviceType": row.get("tipo_servicio"),
        "serviceName": row.get("nombre_servicio"),
        "rating": parse_int(row.get("puntuacion")),
        "comment": row.get("comentario"),
        "language": row.get("idioma") or "es",
    })]


# Processing order matters: routes before the usage rows that point at them
DATASETS: Tuple[Tuple[str, str, RowMapper], ...] = (
    ("rutas_turisticas.csv", ";", map_route_row),
    ("uso_transporte.csv", ",", map_transport_row),
    ("datos_sostenibilidad.csv", ";", map_sustainability_row),
    ("ocupacion_hotelera.csv", ";", map_occupancy_row),
    ("opiniones_turisticas.csv", ",", map_review_row),
)


class IngestProducer:

    def __init__(self, client: redis.Redis):
        self.client = client

    async def publish(self, topic: str, key: Optional[str], payload: Dict[str, Any]) -> str:
        fields = {"value": json.dumps(payload, ensure_ascii=False)}
        if key:
            fields["key"] = key
        message_id = await self.client.xadd(topics.stream_name(topic), fields)
        ingest_published.labels(topic=topic).inc()
        return message_id

    async def publish_rows(self, rows: Iterable[Dict[str, str]], mapper: RowMapper) -> int:
        count = 0
        for row in rows:
            for topic, key, payload in mapper(row):
                await self.publish(topic, key, payload)
            count += 1
        return count

    async def process_dataset(self, path: Path, delimiter: str, mapper: RowMapper) -> int:
        rows = read_csv(path, delimiter)
        count = await self.publish_rows(rows, mapper)
        logger.info("dataset_published", file=path.name, rows=count)
        return count

    async def run(self, data_dir: Path) -> bool:
        """Publish every dataset in order. Stops at the first failure; no retry."""
        try:
            for filename, delimiter, mapper in DATASETS:
                await self.process_dataset(data_dir / filename, delimiter, mapper)
        except Exception as e:
            logger.error("ingest_publish_failed", error=str(e))
            return False

        logger.info("ingest_publish_completed", data_dir=str(data_dir))
        return True


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish GreenLake tourism CSV datasets to Redis Streams")
    parser.add_argument("--data-dir", type=Path, default=Path("/data"), help="Directory holding the CSV files")
    parser.add_argument("--redis-url", default=settings.REDIS_URL, help="Redis connection URL")
    return parser.parse_args(argv)


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging("ingest-producer")

    client = redis.from_url(args.redis_url, encoding="utf-8", decode_responses=True)
    try:
        ok = await IngestProducer(client).run(args.data_dir)
    finally:
        await client.aclose()
    return 0 if ok else 1


def run_cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run_cli()

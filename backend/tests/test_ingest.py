"""
Tests for the CSV -> Redis Streams -> database ingest pipeline.

Redis is replaced by AsyncMock; the consumer writes to the test database
through its own sessions, as it does in production.
"""

import json
from datetime import date
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ResponseError
from sqlalchemy import func, select

from greenlake.ingest import consumer as consumer_module
from greenlake.ingest import topics
from greenlake.ingest.consumer import IngestConsumer
from greenlake.ingest.handlers import SKIPPED, STORED, EntityMap, parse_date
from greenlake.ingest.producer import (
    IngestProducer,
    map_occupancy_row,
    map_review_row,
    map_route_row,
    map_sustainability_row,
    map_transport_row,
    parse_float,
    parse_int,
    read_csv,
)
from greenlake.models.catalog import (
    Hotel,
    HotelOccupancy,
    HotelSustainability,
    Review,
    Route,
    Service,
    TransportUsage,
    VehicleType,
)


async def _count(db_session, model) -> int:
    return (await db_session.execute(select(func.count()).select_from(model))).scalar_one()


def _fields(payload: dict) -> dict:
    return {"value": json.dumps(payload)}


# --- Parsing ---------------------------------------------------------------

def test_parse_float_uses_leading_number():
    assert parse_float("12.5") == 12.5
    assert parse_float(" 830 kWh") == 830.0
    assert parse_float("-3") == -3.0
    assert parse_float(".5") == 0.5
    assert parse_float("n/a") is None
    assert parse_float("") is None
    assert parse_float(None) is None


def test_parse_int_uses_leading_number():
    assert parse_int("42") == 42
    assert parse_int("87%") == 87
    assert parse_int("3.9") == 3
    assert parse_int("ninguno") is None


def test_parse_date_formats():
    assert parse_date("15/03/2024") == date(2024, 3, 15)
    assert parse_date("2024-03-15") == date(2024, 3, 15)
    assert parse_date("2024-03-15T10:30:00") == date(2024, 3, 15)
    assert parse_date(date(2024, 3, 15)) == date(2024, 3, 15)


def test_read_csv_trims_cells_and_drops_blank_rows(tmp_path):
    path = tmp_path / "rutas_turisticas.csv"
    path.write_text(
        "ruta_nombre ; tipo_ruta;longitud_km\n"
        " Ruta del Lago ;Naturaleza; 12.5 \n"
        ";;\n"
        "Casco Antiguo;Cultural;4\n",
        encoding="utf-8",
    )

    rows = read_csv(path, delimiter=";")
    assert rows == [
        {"ruta_nombre": "Ruta del Lago", "tipo_ruta": "Naturaleza", "longitud_km": "12.5"},
        {"ruta_nombre": "Casco Antiguo", "tipo_ruta": "Cultural", "longitud_km": "4"},
    ]


# --- Row mappers -----------------------------------------------------------

def test_map_route_row():
    [(topic, key, payload)] = map_route_row({
        "ruta_nombre": "Ruta del Lago",
        "tipo_ruta": "Naturaleza",
        "longitud_km": "12.5",
        "duracion_hr": "3",
        "popularidad": "80",
    })
    assert topic == topics.ROUTES
    assert key == "Ruta del Lago"
    assert payload == {
        "name": "Ruta del Lago",
        "routeType": "Naturaleza",
        "lengthKm": 12.5,
        "durationHr": 3.0,
        "popularity": 80,
    }


def test_map_transport_row_emits_parent_first():
    messages = map_transport_row({
        "fecha": "01/06/2024",
        "tipo_transporte": "Bicicleta",
        "num_usuarios": "120",
        "tiempo_viaje_promedio_min": "18.5",
        "ruta_popular": "Ruta del Lago",
    })
    assert [m[0] for m in messages] == [topics.VEHICLE_TYPES, topics.TRANSPORT_USAGE]
    assert messages[0][2] == {"name": "Bicicleta"}
    assert messages[1][2]["userCount"] == 120
    assert messages[1][2]["averageTravelTimeMin"] == 18.5
    assert messages[1][2]["popularRoute"] == "Ruta del Lago"


def test_map_hotel_rows_emit_hotel_first():
    sustainability = map_sustainability_row({
        "hotel_nombre": "Hotel Lago Verde",
        "fecha": "01/06/2024",
        "consumo_energia_kwh": "800",
        "residuos_generados_kg": "300",
        "porcentaje_reciclaje": "65",
        "uso_agua_m3": "40",
    })
    occupancy = map_occupancy_row({
        "hotel_nombre": "Hotel Lago Verde",
        "fecha": "01/06/2024",
        "tasa_ocupacion": "72.5",
        "reservas_confirmadas": "58",
        "cancelaciones": "3",
        "precio_promedio_noche": "11500",
    })
    assert [m[0] for m in sustainability] == [topics.HOTELS, topics.HOTEL_SUSTAINABILITY]
    assert [m[0] for m in occupancy] == [topics.HOTELS, topics.HOTEL_OCCUPANCY]
    assert sustainability[1][2]["recyclingPercentage"] == 65.0
    assert occupancy[1][2]["occupancyRate"] == 72.5
    assert occupancy[1][2]["averagePricePerNight"] == 11500.0


def test_map_review_row_defaults_language():
    [(topic, key, payload)] = map_review_row({
        "fecha": "02/06/2024",
        "tipo_servicio": "Hotel",
        "nombre_servicio": "Hotel Lago Verde",
        "puntuacion": "4",
        "comentario": "Muy limpio",
        "idioma": "",
    })
    assert topic == topics.REVIEWS
    assert key is None
    assert payload["rating"] == 4
    assert payload["language"] == "es"


def test_stream_names_round_trip():
    assert topics.stream_name(topics.HOTELS) == "tourism:hotels"
    assert topics.topic_from_stream("tourism:hotel-occupancy") == topics.HOTEL_OCCUPANCY


# --- Consumer --------------------------------------------------------------

@pytest.fixture
def ingest_consumer(db_session, session_factory) -> IngestConsumer:
    return IngestConsumer(AsyncMock(), session_factory, group="test-group", consumer_name="test-consumer")


@pytest.mark.asyncio
async def test_hotel_then_occupancy(db_session, ingest_consumer):
    assert await ingest_consumer.handle_message(topics.HOTELS, _fields({"name": "Hotel Lago Verde"})) == STORED
    outcome = await ingest_consumer.handle_message(topics.HOTEL_OCCUPANCY, _fields({
        "hotelName": "Hotel Lago Verde",
        "date": "01/06/2024",
        "occupancyRate": 72.5,
        "confirmedBookings": 58,
        "cancellations": None,
        "averagePricePerNight": 11500.0,
    }))
    assert outcome == STORED

    occupancy = (await db_session.execute(select(HotelOccupancy))).scalar_one()
    assert occupancy.date == date(2024, 6, 1)
    assert occupancy.occupancy_rate == 72.5
    assert occupancy.cancellations == 0


@pytest.mark.asyncio
async def test_parent_is_upserted_once(db_session, ingest_consumer):
    for _ in range(3):
        await ingest_consumer.handle_message(topics.HOTELS, _fields({"name": "Hotel Lago Verde"}))
    assert await _count(db_session, Hotel) == 1


@pytest.mark.asyncio
async def test_child_without_parent_is_skipped(db_session, ingest_consumer):
    outcome = await ingest_consumer.handle_message(topics.HOTEL_SUSTAINABILITY, _fields({
        "hotelName": "Hotel Fantasma",
        "date": "01/06/2024",
        "energyConsumptionKwh": 800,
        "wasteGeneratedKg": 300,
        "recyclingPercentage": 65,
        "waterUsageM3": 40,
    }))
    assert outcome == SKIPPED
    assert await _count(db_session, HotelSustainability) == 0
    assert await _count(db_session, Hotel) == 0


@pytest.mark.asyncio
async def test_transport_usage_creates_route_placeholder(db_session, ingest_consumer):
    await ingest_consumer.handle_message(topics.VEHICLE_TYPES, _fields({"name": "Bicicleta"}))
    outcome = await ingest_consumer.handle_message(topics.TRANSPORT_USAGE, _fields({
        "date": "01/06/2024",
        "vehicleType": "Bicicleta",
        "userCount": 120,
        "averageTravelTimeMin": 18.5,
        "popularRoute": "Ruta del Lago",
    }))
    assert outcome == STORED

    route = (await db_session.execute(select(Route))).scalar_one()
    assert route.name == "Ruta del Lago"
    assert route.route_type is None

    # The routes dataset later fills in the placeholder instead of duplicating it
    await ingest_consumer.handle_message(topics.ROUTES, _fields({
        "name": "Ruta del Lago", "routeType": "Naturaleza", "lengthKm": 12.5, "durationHr": 3, "popularity": 80,
    }))
    await db_session.refresh(route)
    assert route.route_type == "Naturaleza"
    assert route.popularity == 80
    assert await _count(db_session, Route) == 1

    usage = (await db_session.execute(select(TransportUsage))).scalar_one()
    assert usage.popular_route_id == route.id


@pytest.mark.asyncio
async def test_transport_usage_without_vehicle_type_is_skipped(db_session, ingest_consumer):
    outcome = await ingest_consumer.handle_message(topics.TRANSPORT_USAGE, _fields({
        "date": "01/06/2024", "vehicleType": "Globo", "userCount": 1, "averageTravelTimeMin": 60,
    }))
    assert outcome == SKIPPED
    assert await _count(db_session, VehicleType) == 0


@pytest.mark.asyncio
async def test_reviews_attach_to_their_target(db_session, ingest_consumer):
    base = {"date": "02/06/2024", "rating": 4, "comment": "Bien", "language": "es"}
    await ingest_consumer.handle_message(
        topics.REVIEWS, _fields({**base, "serviceType": "Hotel", "serviceName": "Hotel Lago Verde"})
    )
    await ingest_consumer.handle_message(
        topics.REVIEWS, _fields({**base, "serviceType": "Ruta", "serviceName": "Ruta del Lago"})
    )
    await ingest_consumer.handle_message(
        topics.REVIEWS, _fields({**base, "serviceType": "Museo", "serviceName": "Museo del Agua"})
    )

    reviews = (await db_session.execute(select(Review).order_by(Review.id))).scalars().all()
    assert [(r.hotel_id is not None, r.route_id is not None, r.service_id is not None) for r in reviews] == [
        (True, False, False),
        (False, True, False),
        (False, False, True),
    ]
    service = (await db_session.execute(select(Service))).scalar_one()
    assert service.service_type == "Museo"


@pytest.mark.asyncio
async def test_malformed_message_is_rolled_back(db_session, ingest_consumer):
    """Hotel created inside the failed message must not survive it."""
    outcome = await ingest_consumer.handle_message(topics.REVIEWS, _fields({
        "date": "02/06/2024", "serviceType": "Hotel", "serviceName": "Hotel Nuevo", "rating": None,
    }))
    assert outcome == "error"
    assert await _count(db_session, Hotel) == 0
    assert await _count(db_session, Review) == 0

    # The entity map forgot the rolled-back id, so the next message recreates the hotel
    assert await ingest_consumer.handle_message(topics.HOTELS, _fields({"name": "Hotel Nuevo"})) == STORED
    assert await _count(db_session, Hotel) == 1


@pytest.mark.asyncio
async def test_invalid_json_is_an_error(ingest_consumer):
    assert await ingest_consumer.handle_message(topics.HOTELS, {"value": "{not json"}) == "error"


@pytest.mark.asyncio
async def test_unknown_topic_is_skipped(ingest_consumer):
    assert await ingest_consumer.handle_message("weather", _fields({})) == SKIPPED


@pytest.mark.asyncio
async def test_setup_creates_groups_and_tolerates_existing(db_session, session_factory):
    client = AsyncMock()
    client.xgroup_create.side_effect = ResponseError("BUSYGROUP Consumer Group name already exists")
    ingest_consumer = IngestConsumer(client, session_factory, group="test-group")

    await ingest_consumer.setup()
    assert client.xgroup_create.await_count == len(topics.ALL_TOPICS)
    client.xgroup_create.assert_any_await("tourism:hotels", "test-group", id="0", mkstream=True)


@pytest.mark.asyncio
async def test_setup_propagates_other_redis_errors(db_session, session_factory):
    client = AsyncMock()
    client.xgroup_create.side_effect = ResponseError("WRONGTYPE Operation against a key")
    with pytest.raises(ResponseError):
        await IngestConsumer(client, session_factory).setup()


@pytest.mark.asyncio
async def test_setup_preloads_entity_map(db_session, session_factory):
    db_session.add(Hotel(name="Hotel Lago Verde"))
    await db_session.commit()

    ingest_consumer = IngestConsumer(AsyncMock(), session_factory)
    await ingest_consumer.setup()
    assert await ingest_consumer.entities.resolve(db_session, "hotels", "Hotel Lago Verde") is not None


@pytest.mark.asyncio
async def test_process_batch_acks_everything_and_invalidates_hotel_cache(db_session, ingest_consumer,
                                                                         monkeypatch):
    invalidate = AsyncMock()
    monkeypatch.setattr(consumer_module, "invalidate_hotel_cache", invalidate)
    ingest_consumer.client.xreadgroup.return_value = [
        ("tourism:hotels", [("1-0", _fields({"name": "Hotel Lago Verde"}))]),
        ("tourism:hotel-occupancy", [("1-0", {"value": "broken"})]),
    ]

    handled = await ingest_consumer.process_batch(block_ms=0)

    assert handled == 2
    ingest_consumer.client.xack.assert_any_await("tourism:hotels", "test-group", "1-0")
    ingest_consumer.client.xack.assert_any_await("tourism:hotel-occupancy", "test-group", "1-0")
    invalidate.assert_awaited_once()


@pytest.mark.asyncio
async def test_process_batch_leaves_cache_alone_for_transport_data(db_session, ingest_consumer, monkeypatch):
    invalidate = AsyncMock()
    monkeypatch.setattr(consumer_module, "invalidate_hotel_cache", invalidate)
    ingest_consumer.client.xreadgroup.return_value = [
        ("tourism:vehicle-types", [("1-0", _fields({"name": "Bicicleta"}))]),
    ]

    assert await ingest_consumer.process_batch(block_ms=0) == 1
    invalidate.assert_not_awaited()


@pytest.mark.asyncio
async def test_process_batch_empty(ingest_consumer):
    ingest_consumer.client.xreadgroup.return_value = []
    assert await ingest_consumer.process_batch(block_ms=0) == 0
    ingest_consumer.client.xack.assert_not_awaited()


# --- Producer --------------------------------------------------------------

@pytest.mark.asyncio
async def test_publish_writes_json_value_and_key():
    client = AsyncMock()
    client.xadd.return_value = "1700000000000-0"

    message_id = await IngestProducer(client).publish(topics.HOTELS, "Hotel Lago Verde", {"name": "Hotel Lago Verde"})

    assert message_id == "1700000000000-0"
    client.xadd.assert_awaited_once_with(
        "tourism:hotels",
        {"value": json.dumps({"name": "Hotel Lago Verde"}), "key": "Hotel Lago Verde"},
    )


@pytest.mark.asyncio
async def test_publish_without_key():
    client = AsyncMock()
    await IngestProducer(client).publish(topics.REVIEWS, None, {"rating": 5})
    stream, fields = client.xadd.await_args.args
    assert stream == "tourism:reviews"
    assert "key" not in fields


def _write_datasets(data_dir):
    (data_dir / "rutas_turisticas.csv").write_text(
        "ruta_nombre;tipo_ruta;longitud_km;duracion_hr;popularidad\nRuta del Lago;Naturaleza;12.5;3;80\n",
        encoding="utf-8",
    )
    (data_dir / "uso_transporte.csv").write_text(
        "fecha,tipo_transporte,num_usuarios,tiempo_viaje_promedio_min,ruta_popular\n"
        "01/06/2024,Bicicleta,120,18.5,Ruta del Lago\n",
        encoding="utf-8",
    )
    (data_dir / "datos_sostenibilidad.csv").write_text(
        "hotel_nombre;fecha;consumo_energia_kwh;residuos_generados_kg;porcentaje_reciclaje;uso_agua_m3\n"
        "Hotel Lago Verde;01/06/2024;800;300;65;40\n",
        encoding="utf-8",
    )
    (data_dir / "ocupacion_hotelera.csv").write_text(
        "hotel_nombre;fecha;tasa_ocupacion;reservas_confirmadas;cancelaciones;precio_promedio_noche\n"
        "Hotel Lago Verde;01/06/2024;72.5;58;3;11500\n",
        encoding="utf-8",
    )
    (data_dir / "opiniones_turisticas.csv").write_text(
        "fecha,tipo_servicio,nombre_servicio,puntuacion,comentario,idioma\n"
        "02/06/2024,Hotel,Hotel Lago Verde,4,Muy limpio,es\n",
        encoding="utf-8",
    )


@pytest.mark.asyncio
async def test_producer_run_publishes_datasets_in_order(tmp_path):
    _write_datasets(tmp_path)
    client = AsyncMock()

    assert await IngestProducer(client).run(tmp_path) is True

    streams = [call.args[0] for call in client.xadd.await_args_list]
    assert streams == [
        "tourism:routes",
        "tourism:vehicle-types",
        "tourism:transport-usage",
        "tourism:hotels",
        "tourism:hotel-sustainability",
        "tourism:hotels",
        "tourism:hotel-occupancy",
        "tourism:reviews",
    ]


@pytest.mark.asyncio
async def test_producer_run_reports_missing_dataset(tmp_path):
    client = AsyncMock()
    assert await IngestProducer(client).run(tmp_path) is False
    client.xadd.assert_not_awaited()


@pytest.mark.asyncio
async def test_produced_messages_load_through_consumer(tmp_path, db_session, ingest_consumer):
    """End to end: every published message is accepted by the consumer."""
    _write_datasets(tmp_path)
    client = AsyncMock()
    await IngestProducer(client).run(tmp_path)

    for call in client.xadd.await_args_list:
        stream, fields = call.args
        outcome = await ingest_consumer.handle_message(topics.topic_from_stream(stream), fields)
        assert outcome == STORED

    assert await _count(db_session, Hotel) == 1
    assert await _count(db_session, HotelOccupancy) == 1
    assert await _count(db_session, HotelSustainability) == 1
    assert await _count(db_session, TransportUsage) == 1
    assert await _count(db_session, Route) == 1
    assert await _count(db_session, Review) == 1


def test_entity_map_reset():
    entities = EntityMap()
    entities.remember("hotels", "Hotel Lago Verde", 1)
    entities.reset()
    assert entities._ids["hotels"] == {}

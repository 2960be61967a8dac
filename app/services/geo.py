"""Utilidades GPS: distancia de la prueba de ruta y geocodificación inversa."""
from datetime import datetime, timezone
from typing import List, Optional

import numpy as np
import requests

from app.config.settings import NOMINATIM_URL
from app.models.inspection import GeoPoint, Location, RoadTest, RoutePoint

EARTH_RADIUS_KM = 6371.0


def route_distance_km(route: List[RoutePoint]) -> float:
    """Suma de distancias de círculo máximo (haversine) entre puntos consecutivos."""
    if len(route) < 2:
        return 0.0
    coords = np.radians(np.array([[p.latitude, p.longitude] for p in route], dtype=float))
    lat1, lon1 = coords[:-1, 0], coords[:-1, 1]
    lat2, lon2 = coords[1:, 0], coords[1:, 1]
    a = np.sin((lat2 - lat1) / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2
    segments = 2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))
    return float(segments.sum())


def start_road_test(location: Location, latitude: float, longitude: float,
                    address: Optional[str] = None, at: Optional[datetime] = None) -> Location:
    at = at or datetime.now(timezone.utc)
    start = GeoPoint(latitude=latitude, longitude=longitude, address=address, timestamp=at)
    return location.model_copy(update={
        "start": start,
        "current": GeoPoint(latitude=latitude, longitude=longitude, address=address),
        "end": None,
        "road_test": RoadTest(route=[RoutePoint(latitude=latitude, longitude=longitude, timestamp=at)]),
    })


def add_route_point(location: Location, latitude: float, longitude: float,
                    at: Optional[datetime] = None) -> Location:
    # Solo se añade mientras la prueba está activa (hay inicio y todavía no hay fin)
    if location.start is None or location.end is not None or location.road_test is None:
        return location
    at = at or datetime.now(timezone.utc)
    route = list(location.road_test.route) + [RoutePoint(latitude=latitude, longitude=longitude, timestamp=at)]
    return location.model_copy(update={
        "current": GeoPoint(latitude=latitude, longitude=longitude),
        "road_test": location.road_test.model_copy(update={"route": route}),
    })


def stop_road_test(location: Location, latitude: float, longitude: float,
                   address: Optional[str] = None, at: Optional[datetime] = None) -> Location:
    if location.start is None or location.road_test is None:
        return location
    at = at or datetime.now(timezone.utc)
    route = list(location.road_test.route) + [RoutePoint(latitude=latitude, longitude=longitude, timestamp=at)]
    started = location.start.timestamp or route[0].timestamp
    duration = max((_as_utc(at) - _as_utc(started)).total_seconds(), 0.0) / 60
    return location.model_copy(update={
        "end": GeoPoint(latitude=latitude, longitude=longitude, address=address, timestamp=at),
        "current": GeoPoint(latitude=latitude, longitude=longitude, address=address),
        "road_test": RoadTest(distance=round(route_distance_km(route), 3), duration=round(duration, 2), route=route),
    })


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def reverse_geocode(latitude: float, longitude: float) -> Optional[str]:
    """Devuelve la dirección de unas coordenadas; None si el servicio falla."""
    try:
        response = requests.get(
            NOMINATIM_URL,
            params={"format": "json", "lat": latitude, "lon": longitude},
            headers={"User-Agent": "pdi-inspections-backend"},
            timeout=10,
        )
        response.raise_for_status()
        return response.json().get("display_name")
    except (requests.RequestException, ValueError) as e:
        print(f"Geocodificación inversa no disponible para ({latitude}, {longitude}): {str(e)}")
        return None

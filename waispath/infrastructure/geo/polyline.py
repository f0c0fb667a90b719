"""Decoder for the encoded polyline format returned by routing providers."""
from __future__ import annotations

from waispath.core.entities import GeoCoordinate
from waispath.utils.logger import logger


def _read_varint(encoded: str, index: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise ValueError("Truncated polyline")
        chunk = ord(encoded[index]) - 63
        index += 1
        if chunk < 0:
            raise ValueError(f"Invalid polyline character at position {index - 1}")
        result |= (chunk & 0x1F) << shift
        shift += 5
        if chunk < 0x20:
            break
    delta = ~(result >> 1) if result & 1 else result >> 1
    return delta, index


def decode_polyline(encoded: str, precision: int = 5) -> list[GeoCoordinate]:
    """Decode an encoded polyline into coordinates.

    Malformed input is logged and produces an empty list so route geometry
    problems degrade to "no route" instead of failing the caller.
    """

    if not encoded or not isinstance(encoded, str):
        return []

    factor = 10**precision
    points: list[GeoCoordinate] = []
    index = 0
    latitude = 0
    longitude = 0
    try:
        while index < len(encoded):
            delta_lat, index = _read_varint(encoded, index)
            delta_lon, index = _read_varint(encoded, index)
            latitude += delta_lat
            longitude += delta_lon
            points.append(GeoCoordinate(latitude=latitude / factor, longitude=longitude / factor))
    except ValueError as error:
        logger.warning("Polyline decode failed: {}", error)
        return []

    return points


__all__ = ["decode_polyline"]

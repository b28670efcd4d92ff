"""Zone and region parsing and resolution."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Any

from gcp_panel.errors import (
    InvalidLocationError,
    MissingLocationError,
    NoAvailableZoneError,
)

_ZONE_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*-[a-z]$")
_REGION_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*[0-9]$")

ZoneLister = Callable[[], Iterable[Any]]


def normalize_location(value: object) -> str:
    """Reduce a bare name, resource path or URL to its last path segment."""
    if value is None:
        return ""
    segments = [segment for segment in str(value).strip().split("/") if segment]
    return segments[-1] if segments else ""


def is_zone_name(value: str) -> bool:
    return bool(_ZONE_PATTERN.match(value))


def is_region_name(value: str) -> bool:
    return bool(_REGION_PATTERN.match(value))


def zone_to_region(zone: str) -> str:
    index = zone.rfind("-")
    if index <= 0:
        raise InvalidLocationError(f"Invalid zone: {zone}")
    return zone[:index]


def resolve_zone(raw_location: object, list_zones: ZoneLister) -> str:
    location = normalize_location(raw_location)
    if not location:
        raise MissingLocationError("Missing zone/region")
    if location == "all":
        raise InvalidLocationError("Invalid zone/region")

    if is_region_name(location):
        return _pick_zone(location, list_zones())
    if not is_zone_name(location):
        raise InvalidLocationError(f"Invalid zone/region: {location}")
    return location


def _pick_zone(region: str, zones: Iterable[Any]) -> str:
    candidates: list[str] = []
    for zone in zones:
        if normalize_location(getattr(zone, "region", None)) != region:
            continue
        status = getattr(zone, "status", None)
        if status and str(status).upper() != "UP":
            continue
        name = getattr(zone, "name", None)
        if name:
            candidates.append(str(name))

    if not candidates:
        raise NoAvailableZoneError(f"No available zones found in region: {region}")
    return min(candidates)

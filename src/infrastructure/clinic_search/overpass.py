import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from src.application.errors import LocationFailedError
from src.application.ports import ClinicSearchPort
from src.domain.models import Clinic
from src.infrastructure.config import Settings


logger = logging.getLogger(__name__)


KIND_NAMES = {
    "veterinary": "Veterinary Clinic",
    "pet": "Pet Shop",
    "animal_boarding": "Animal Boarding",
}


def build_overpass_query(lat: float, lon: float, radius_m: int, tags: Sequence[Tuple[str, str]]) -> str:
    clauses = []
    for key, value in tags:
        for element in ("node", "way", "relation"):
            clauses.append(f'  {element}["{key}"="{value}"](around:{radius_m},{lat},{lon});')
    return "[out:json];\n(\n" + "\n".join(clauses) + "\n);\nout center;"


def _address(tags: Dict[str, Any]) -> str:
    if tags.get("address"):
        return tags["address"]
    if tags.get("addr:full"):
        return tags["addr:full"]
    street = tags.get("addr:street")
    if street:
        line = " ".join(p for p in (tags.get("addr:housenumber"), street) if p)
        city = tags.get("addr:city")
        return f"{line}, {city}" if city else line
    return "Address not available"


def _element_to_clinic(element: Dict[str, Any], tags_filter: Sequence[Tuple[str, str]]) -> Optional[Clinic]:
    tags = element.get("tags") or {}
    kind = next((value for key, value in tags_filter if tags.get(key) == value), None)
    if kind is None:
        return None

    # Ways and relations carry their coordinates in "center" with `out center`
    lat = element.get("lat", (element.get("center") or {}).get("lat"))
    lon = element.get("lon", (element.get("center") or {}).get("lon"))
    if lat is None or lon is None:
        return None

    return Clinic(
        id=f"{element.get('type', 'node')}/{element.get('id')}",
        name=tags.get("name") or KIND_NAMES.get(kind, "Veterinary Clinic"),
        lat=float(lat),
        lon=float(lon),
        address=_address(tags),
        kind=kind,
        phone=tags.get("phone") or tags.get("contact:phone"),
        website=tags.get("website") or tags.get("contact:website"),
    )


class OverpassClinicSearchAdapter(ClinicSearchPort):
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self.url = self.settings.overpass_url
        self.timeout = self.settings.request_timeout_seconds

    def search_nearby(
        self, lat: float, lon: float, radius_m: int, tags: Sequence[Tuple[str, str]]
    ) -> List[Clinic]:
        query = build_overpass_query(lat, lon, radius_m, tags)
        try:
            resp = requests.post(self.url, data={"data": query}, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.exception("Overpass query failed: %s", e)
            raise LocationFailedError("Failed to find nearby veterinary clinics. Please try again later.") from e

        clinics: List[Clinic] = []
        for element in data.get("elements", []):
            clinic = _element_to_clinic(element, tags)
            if clinic is not None:
                clinics.append(clinic)

        logger.info("Overpass returned %d place(s) for %s", len(clinics), [f"{k}={v}" for k, v in tags])
        return clinics

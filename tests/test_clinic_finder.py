import pytest

from src.application.errors import IntakeValidationError
from src.application.use_cases import ALTERNATIVE_TAGS, VETERINARY_TAGS, ClinicFinder
from src.domain.geo import haversine_km
from src.domain.models import Clinic
from src.infrastructure.clinic_search.mock_search import MockClinicSearchAdapter


class DummySearch:
    def __init__(self, results):
        self.results = results
        self.calls = []

    def search_nearby(self, lat, lon, radius_m, tags):
        self.calls.append((lat, lon, radius_m, tuple(tags)))
        return list(self.results.get(tuple(tags), []))


def _clinic(name, lat, lon, kind="veterinary"):
    return Clinic(id=f"node/{name}", name=name, lat=lat, lon=lon, kind=kind)


def test_haversine_one_degree():
    assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.195, abs=0.01)
    assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, abs=0.01)


def test_haversine_same_point():
    assert haversine_km(40.7128, -74.0060, 40.7128, -74.0060) == 0.0


def test_clinics_sorted_by_rounded_distance():
    search = DummySearch({
        VETERINARY_TAGS: [_clinic("Far", 40.02, -74.0), _clinic("Near", 40.01, -74.0)],
    })
    clinics = ClinicFinder(search).find_nearby(40.0, -74.0, 5000)

    assert [c.name for c in clinics] == ["Near", "Far"]
    assert clinics[0].distance_km == 1.1
    assert clinics[1].distance_km == 2.2
    assert search.calls == [(40.0, -74.0, 5000, VETERINARY_TAGS)]


def test_falls_back_to_pet_shops_and_boarding():
    search = DummySearch({ALTERNATIVE_TAGS: [_clinic("Paws Boarding", 40.01, -74.0, kind="animal_boarding")]})
    clinics = ClinicFinder(search).find_nearby(40.0, -74.0)

    assert [c.kind for c in clinics] == ["animal_boarding"]
    assert [call[3] for call in search.calls] == [VETERINARY_TAGS, ALTERNATIVE_TAGS]
    assert search.calls[0][2] == 5000


def test_no_fallback_when_disabled():
    search = DummySearch({ALTERNATIVE_TAGS: [_clinic("Pet Shop", 40.01, -74.0, kind="pet")]})
    clinics = ClinicFinder(search, include_alternatives=False).find_nearby(40.0, -74.0)

    assert clinics == []
    assert len(search.calls) == 1


@pytest.mark.parametrize(
    "lat,lon,radius",
    [(95.0, 0.0, 5000), (0.0, 200.0, 5000), (None, 0.0, 5000), (0.0, 0.0, 0), (0.0, 0.0, 100000)],
)
def test_invalid_search_rejected_before_lookup(lat, lon, radius):
    search = DummySearch({})
    with pytest.raises(IntakeValidationError):
        ClinicFinder(search).find_nearby(lat, lon, radius)
    assert search.calls == []


def test_mock_search_results_within_radius():
    clinics = ClinicFinder(MockClinicSearchAdapter(count=3)).find_nearby(40.7128, -74.0060, 5000)

    assert len(clinics) == 3
    assert all(c.distance_km <= 5.0 for c in clinics)
    assert clinics == sorted(clinics, key=lambda c: c.distance_km)

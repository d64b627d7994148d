"""Unit tests for input validators."""
import pytest
from src.application.validators import (
    MAX_SYMPTOMS_LENGTH,
    validate_coordinates,
    validate_radius,
    validate_rating,
    validate_species,
    validate_symptoms,
)


class TestValidateSpecies:
    """Test animal type validation."""

    def test_valid_species(self):
        for species in ["Dog", "Cat", "Bearded dragon", " Rabbit "]:
            is_valid, error = validate_species(species)
            assert is_valid, f"Species '{species}' should be valid but got error: {error}"
            assert error == ""

    def test_missing_species(self):
        for species in [None, "", "   "]:
            is_valid, error = validate_species(species)
            assert not is_valid
            assert error == "Pet type is required"

    def test_species_too_long(self):
        is_valid, error = validate_species("x" * 51)
        assert not is_valid
        assert "too long" in error


class TestValidateSymptoms:
    """Test symptom description validation."""

    def test_valid_symptoms(self):
        is_valid, error = validate_symptoms("Vomiting since this morning, not eating")
        assert is_valid
        assert error == ""

    def test_missing_symptoms(self):
        is_valid, error = validate_symptoms("  ")
        assert not is_valid
        assert error == "Please describe your pet's symptoms"

    def test_too_short(self):
        is_valid, error = validate_symptoms("ok")
        assert not is_valid
        assert "too short" in error

    def test_too_long(self):
        is_valid, error = validate_symptoms("a" * (MAX_SYMPTOMS_LENGTH + 1))
        assert not is_valid
        assert "too long" in error


class TestValidateCoordinates:
    """Test location validation."""

    def test_valid(self):
        for lat, lon in [(0, 0), (40.7128, -74.0060), (-90, 180), ("51.5", "-0.12")]:
            is_valid, error = validate_coordinates(lat, lon)
            assert is_valid, error

    def test_missing(self):
        assert validate_coordinates(None, 10.0) == (False, "Location is required")

    def test_not_numeric(self):
        for lat, lon in [("north", 0), (float("nan"), 0)]:
            is_valid, error = validate_coordinates(lat, lon)
            assert not is_valid
            assert error == "Location must be numeric"

    def test_out_of_range(self):
        assert validate_coordinates(91, 0) == (False, "Latitude must be between -90 and 90")
        assert validate_coordinates(0, -181) == (False, "Longitude must be between -180 and 180")


@pytest.mark.parametrize("radius,expected", [(5000, True), (50000, True), (0, False), (-1, False), (50001, False)])
def test_validate_radius(radius, expected):
    is_valid, _ = validate_radius(radius)
    assert is_valid is expected


@pytest.mark.parametrize("rating,expected", [(1, True), (5, True), (0, False), (6, False), (None, False), (True, False), ("3", False)])
def test_validate_rating(rating, expected):
    is_valid, error = validate_rating(rating)
    assert is_valid is expected
    if not expected:
        assert error == "Please provide a valid rating between 1 and 5"

"""Input validation for pet intake, clinic search and feedback."""
import math
from typing import Optional, Tuple


MAX_SYMPTOMS_LENGTH = 4000
MAX_SEARCH_RADIUS_M = 50000


def validate_species(species: Optional[str]) -> Tuple[bool, str]:
    """
    Validate the animal type.

    Args:
        species: Animal type as entered by the user

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not species or not species.strip():
        return False, "Pet type is required"

    if len(species.strip()) > 50:
        return False, "Pet type is too long (max 50 characters)"

    return True, ""


def validate_symptoms(symptoms: Optional[str]) -> Tuple[bool, str]:
    """
    Validate the free-text symptom description.

    Args:
        symptoms: Symptom description

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not symptoms or not symptoms.strip():
        return False, "Please describe your pet's symptoms"

    if len(symptoms.strip()) < 3:
        return False, "Symptom description is too short"

    if len(symptoms) > MAX_SYMPTOMS_LENGTH:
        return False, f"Symptom description is too long (max {MAX_SYMPTOMS_LENGTH} characters)"

    return True, ""


def validate_coordinates(lat: Optional[float], lon: Optional[float]) -> Tuple[bool, str]:
    """
    Validate a WGS84 coordinate pair.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if lat is None or lon is None:
        return False, "Location is required"

    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return False, "Location must be numeric"

    if math.isnan(lat) or math.isnan(lon):
        return False, "Location must be numeric"

    if not -90.0 <= lat <= 90.0:
        return False, "Latitude must be between -90 and 90"

    if not -180.0 <= lon <= 180.0:
        return False, "Longitude must be between -180 and 180"

    return True, ""


def validate_radius(radius_m: Optional[int]) -> Tuple[bool, str]:
    if radius_m is None or radius_m <= 0:
        return False, "Search radius must be positive"
    if radius_m > MAX_SEARCH_RADIUS_M:
        return False, f"Search radius is too large (max {MAX_SEARCH_RADIUS_M // 1000} km)"
    return True, ""


def validate_rating(rating: Optional[int]) -> Tuple[bool, str]:
    """
    Validate a feedback rating.

    Args:
        rating: Rating between 1 and 5

    Returns:
        Tuple of (is_valid, error_message)
    """
    if rating is None or isinstance(rating, bool):
        return False, "Please provide a valid rating between 1 and 5"

    if not isinstance(rating, int) or not 1 <= rating <= 5:
        return False, "Please provide a valid rating between 1 and 5"

    return True, ""

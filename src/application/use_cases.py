import logging
from typing import List, Optional, Union

from src.application.errors import AnalysisFailedError, IntakeValidationError
from src.application.ports import ClinicSearchPort, LLMPort
from src.application.prompts import build_prompt, generation_config_for
from src.application.validators import (
    validate_coordinates,
    validate_radius,
    validate_species,
    validate_symptoms,
)
from src.domain.geo import haversine_km
from src.domain.models import Analysis, AnalysisFlow, Clinic, PetIntake
from src.domain.response_parser import parse_response


logger = logging.getLogger(__name__)


VETERINARY_TAGS = (("amenity", "veterinary"),)
ALTERNATIVE_TAGS = (("shop", "pet"), ("amenity", "animal_boarding"))
DEFAULT_RADIUS_M = 5000


class PetSymptomAnalysisUseCase:
    def __init__(self, llm: LLMPort):
        self.llm = llm

    def analyze(self, intake: PetIntake, flow: Union[AnalysisFlow, str] = AnalysisFlow.CLINICAL) -> Analysis:
        for is_valid, error in (validate_species(intake.species), validate_symptoms(intake.symptoms)):
            if not is_valid:
                raise IntakeValidationError(error)

        flow = AnalysisFlow(flow)
        prompt = build_prompt(intake, flow)
        raw = self.llm.generate(prompt, generation_config_for(flow))

        if not raw or not raw.strip():
            logger.error("Empty response from model for %s flow", flow.value)
            raise AnalysisFailedError("The analysis service returned an empty response. Please try again.")

        analysis = parse_response(raw, flow)
        logger.info(
            "Analysis complete: flow=%s species=%s conditions=%d",
            flow.value,
            intake.species,
            len(analysis.conditions),
        )
        return analysis


class ClinicFinder:
    def __init__(self, search: ClinicSearchPort, include_alternatives: bool = True):
        self.search = search
        self.include_alternatives = include_alternatives

    def find_nearby(self, lat: float, lon: float, radius_m: Optional[int] = None) -> List[Clinic]:
        radius_m = DEFAULT_RADIUS_M if radius_m is None else radius_m
        for is_valid, error in (validate_coordinates(lat, lon), validate_radius(radius_m)):
            if not is_valid:
                raise IntakeValidationError(error)

        places = self.search.search_nearby(lat, lon, radius_m, VETERINARY_TAGS)
        if not places and self.include_alternatives:
            logger.info("No veterinary clinics within %dm; searching pet shops and boarding", radius_m)
            places = self.search.search_nearby(lat, lon, radius_m, ALTERNATIVE_TAGS)

        clinics = [
            place.model_copy(update={"distance_km": round(haversine_km(lat, lon, place.lat, place.lon), 1)})
            for place in places
        ]
        clinics.sort(key=lambda clinic: clinic.distance_km)
        return clinics

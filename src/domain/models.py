from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnalysisFlow(str, Enum):
    CLINICAL = "clinical"
    GENERIC = "generic"


class PetIntake(BaseModel):
    species: Optional[str] = None
    age: Optional[str] = None
    weight: Optional[str] = None
    breed: Optional[str] = None
    symptoms: Optional[str] = None

    @field_validator("species", "age", "weight", "breed", "symptoms")
    @classmethod
    def blank_to_none(cls, v: Optional[str]):
        if v is not None:
            v = v.strip()
            if len(v) == 0:
                return None
        return v


class Condition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    level: str = Field(..., description="Severity (clinical flow) or probability (generic flow)")
    description: str = ""


class Analysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    flow: AnalysisFlow
    conditions: List[Condition] = []
    assessment_text: str
    diagnostics_text: str
    care_text: str
    escalation_text: str
    long_term_text: Optional[str] = None
    raw_response: str


class Clinic(BaseModel):
    id: str
    name: str
    lat: float
    lon: float
    address: str = "Address not available"
    kind: str = "veterinary"
    phone: Optional[str] = None
    website: Optional[str] = None
    distance_km: Optional[float] = None

    @property
    def directions_url(self) -> str:
        return f"https://www.google.com/maps/dir/?api=1&destination={self.lat},{self.lon}"

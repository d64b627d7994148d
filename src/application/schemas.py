from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from src.domain.models import Analysis


class GenerationConfig(BaseModel):
    temperature: float = Field(0.4, ge=0.0, le=2.0)
    top_p: float = Field(0.8, gt=0.0, le=1.0)
    top_k: int = Field(40, ge=1)
    max_output_tokens: int = Field(1024, ge=1)


class Feedback(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class DiagnosisRecord(BaseModel):
    id: str
    user_id: str
    species: str
    symptoms: str
    analysis: Analysis
    feedback: Optional[Feedback] = None
    created_at: datetime

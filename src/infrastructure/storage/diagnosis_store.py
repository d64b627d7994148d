"""Diagnosis history persisted to a JSON file, keyed by user."""
import json
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from src.application.schemas import DiagnosisRecord, Feedback
from src.application.validators import validate_rating
from src.domain.models import Analysis, PetIntake


logger = logging.getLogger(__name__)


class DiagnosisStore:
    """Stores analyses per user and the feedback given on them."""

    def __init__(self, storage_path: Optional[str] = None):
        """
        Initialize DiagnosisStore.

        Args:
            storage_path: Path to JSON file for record storage.
                         Defaults to .streamlit/diagnoses.json
        """
        if storage_path is None:
            project_root = Path(__file__).parent.parent.parent.parent
            storage_path = str(project_root / ".streamlit" / "diagnoses.json")

        self.storage_path = storage_path
        self._ensure_storage_exists()

    def _ensure_storage_exists(self) -> None:
        """Create storage directory and file if they don't exist."""
        storage_dir = os.path.dirname(self.storage_path)
        if storage_dir and not os.path.exists(storage_dir):
            os.makedirs(storage_dir, exist_ok=True)

        if not os.path.exists(self.storage_path) or os.path.getsize(self.storage_path) == 0:
            self._save_records({})

    def _load_records(self) -> Dict[str, Any]:
        """Load raw records from storage file."""
        try:
            with open(self.storage_path, 'r') as f:
                return json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            logger.warning("Diagnosis store at %s unreadable; starting empty", self.storage_path)
            return {}

    def _save_records(self, records: Dict[str, Any]) -> None:
        """Save raw records to storage file."""
        with open(self.storage_path, 'w') as f:
            json.dump(records, f, indent=2)

    @staticmethod
    def _normalize_user(user_id: str) -> str:
        return user_id.strip().lower()

    def _to_record(self, raw: Dict[str, Any]) -> Optional[DiagnosisRecord]:
        try:
            return DiagnosisRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning("Skipping malformed diagnosis record %s: %s", raw.get("id"), e)
            return None

    def create_diagnosis(self, user_id: str, intake: PetIntake, analysis: Analysis) -> DiagnosisRecord:
        """
        Persist an analysis for a user.

        Args:
            user_id: Owner of the record
            intake: The pet details the analysis was produced from
            analysis: Parsed analysis to store

        Returns:
            The stored record
        """
        record = DiagnosisRecord(
            id=uuid.uuid4().hex,
            user_id=self._normalize_user(user_id),
            species=intake.species or "",
            symptoms=intake.symptoms or "",
            analysis=analysis,
            created_at=datetime.now(),
        )
        records = self._load_records()
        records[record.id] = record.model_dump(mode="json")
        self._save_records(records)
        logger.info("Stored diagnosis %s for user %s", record.id, record.user_id)
        return record

    def list_diagnoses(self, user_id: str) -> List[DiagnosisRecord]:
        """All records of a user, newest first."""
        user_id = self._normalize_user(user_id)
        records = []
        for raw in self._load_records().values():
            if raw.get("user_id") != user_id:
                continue
            record = self._to_record(raw)
            if record is not None:
                records.append(record)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def get_diagnosis(self, diagnosis_id: str, user_id: str) -> Optional[DiagnosisRecord]:
        """
        Get a record by id.

        Returns:
            The record, or None if it does not exist or belongs to another user
        """
        raw = self._load_records().get(diagnosis_id)
        if raw is None or raw.get("user_id") != self._normalize_user(user_id):
            return None
        return self._to_record(raw)

    def add_feedback(self, diagnosis_id: str, user_id: str, rating: int, comment: str = "") -> Tuple[bool, str]:
        """
        Attach feedback to a record owned by the user.

        Returns:
            Tuple of (success, message)
        """
        is_valid, error = validate_rating(rating)
        if not is_valid:
            return False, error

        records = self._load_records()
        raw = records.get(diagnosis_id)
        if raw is None:
            return False, "Diagnosis not found"
        if raw.get("user_id") != self._normalize_user(user_id):
            return False, "Not authorized to access this diagnosis"

        raw["feedback"] = Feedback(rating=rating, comment=(comment or "").strip()).model_dump()
        try:
            self._save_records(records)
        except OSError as e:
            logger.exception("Failed to save feedback for %s", diagnosis_id)
            return False, f"Failed to save feedback: {str(e)}"
        return True, "Feedback saved"

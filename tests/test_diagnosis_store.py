"""Unit tests for the diagnosis history store."""
import json
import os
import tempfile

import pytest

from src.domain.models import AnalysisFlow, PetIntake
from src.domain.response_parser import parse_response
from src.infrastructure.storage.diagnosis_store import DiagnosisStore


RESPONSE = "POSSIBLE CONDITIONS:\n1. Conjunctivitis (Mild)\n"


@pytest.fixture
def temp_storage():
    """Create a temporary storage file for testing."""
    with tempfile.NamedTemporaryFile(mode='w', delete=False, suffix='.json') as f:
        temp_path = f.name

    yield temp_path

    # Cleanup
    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def intake():
    return PetIntake(species="Cat", symptoms="red, watery eye")


@pytest.fixture
def analysis():
    return parse_response(RESPONSE, AnalysisFlow.CLINICAL)


class TestDiagnosisStore:
    """Test DiagnosisStore functionality."""

    def test_initialization(self, temp_storage):
        """Test the store creates an empty file."""
        DiagnosisStore(storage_path=temp_storage)
        with open(temp_storage, 'r') as f:
            assert json.load(f) == {}

    def test_create_and_get(self, temp_storage, intake, analysis):
        """Test a stored record can be read back by its owner."""
        store = DiagnosisStore(storage_path=temp_storage)
        record = store.create_diagnosis(" Owner@Example.com ", intake, analysis)

        assert record.user_id == "owner@example.com"
        loaded = store.get_diagnosis(record.id, "owner@example.com")
        assert loaded is not None
        assert loaded.species == "Cat"
        assert loaded.analysis == analysis
        assert loaded.analysis.conditions[0].name == "Conjunctivitis"

    def test_get_other_users_record(self, temp_storage, intake, analysis):
        """Test records are not visible to other users."""
        store = DiagnosisStore(storage_path=temp_storage)
        record = store.create_diagnosis("owner@example.com", intake, analysis)

        assert store.get_diagnosis(record.id, "someone@example.com") is None
        assert store.get_diagnosis("missing", "owner@example.com") is None

    def test_list_newest_first(self, temp_storage, intake, analysis):
        """Test history is per user and ordered newest first."""
        store = DiagnosisStore(storage_path=temp_storage)
        older = store.create_diagnosis("owner@example.com", intake, analysis)
        newer = store.create_diagnosis("owner@example.com", intake, analysis)
        store.create_diagnosis("other@example.com", intake, analysis)

        with open(temp_storage, 'r') as f:
            records = json.load(f)
        records[older.id]["created_at"] = "2020-01-01T10:00:00"
        with open(temp_storage, 'w') as f:
            json.dump(records, f)

        assert [r.id for r in store.list_diagnoses("OWNER@example.com")] == [newer.id, older.id]

    def test_malformed_record_is_skipped(self, temp_storage, intake, analysis):
        """Test a corrupt record does not break the listing."""
        store = DiagnosisStore(storage_path=temp_storage)
        record = store.create_diagnosis("owner@example.com", intake, analysis)

        with open(temp_storage, 'r') as f:
            records = json.load(f)
        records["broken"] = {"id": "broken", "user_id": "owner@example.com"}
        with open(temp_storage, 'w') as f:
            json.dump(records, f)

        assert [r.id for r in store.list_diagnoses("owner@example.com")] == [record.id]

    def test_add_feedback(self, temp_storage, intake, analysis):
        """Test feedback is attached to the record."""
        store = DiagnosisStore(storage_path=temp_storage)
        record = store.create_diagnosis("owner@example.com", intake, analysis)

        success, message = store.add_feedback(record.id, "owner@example.com", 4, "  Very helpful ")
        assert success
        assert message == "Feedback saved"

        loaded = store.get_diagnosis(record.id, "owner@example.com")
        assert loaded.feedback.rating == 4
        assert loaded.feedback.comment == "Very helpful"

    def test_add_feedback_errors(self, temp_storage, intake, analysis):
        """Test feedback is refused for bad ratings, missing records and other users."""
        store = DiagnosisStore(storage_path=temp_storage)
        record = store.create_diagnosis("owner@example.com", intake, analysis)

        assert store.add_feedback(record.id, "owner@example.com", 9) == (
            False,
            "Please provide a valid rating between 1 and 5",
        )
        assert store.add_feedback("missing", "owner@example.com", 3) == (False, "Diagnosis not found")
        assert store.add_feedback(record.id, "intruder@example.com", 3) == (
            False,
            "Not authorized to access this diagnosis",
        )

    def test_unreadable_file_starts_empty(self, temp_storage):
        """Test a corrupt storage file reads as empty."""
        store = DiagnosisStore(storage_path=temp_storage)
        with open(temp_storage, 'w') as f:
            f.write("{not json")

        assert store.list_diagnoses("owner@example.com") == []

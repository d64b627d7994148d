import logging
from typing import List, Optional

import streamlit as st

from src.application.errors import TriageError
from src.application.use_cases import ClinicFinder, PetSymptomAnalysisUseCase
from src.domain.models import Analysis, AnalysisFlow, Clinic, PetIntake
from src.infrastructure.clinic_search.mock_search import MockClinicSearchAdapter
from src.infrastructure.clinic_search.overpass import OverpassClinicSearchAdapter
from src.infrastructure.config import Settings
from src.infrastructure.llm.gemini_client import GeminiLLMAdapter
from src.infrastructure.llm.mistral_client import MistralLLMAdapter
from src.infrastructure.storage.diagnosis_store import DiagnosisStore


logger = logging.getLogger(__name__)


DISCLAIMER = (
    "⚕️ **DISCLAIMER:** This is NOT a veterinary diagnosis. "
    "The analysis is for guidance only. "
    "If your pet shows emergency signs, contact a veterinarian immediately."
)

PET_TYPES = ["Dog", "Cat", "Rabbit", "Bird", "Hamster", "Guinea Pig", "Reptile", "Other"]

# Default location when none is entered (New York City)
DEFAULT_LOCATION = (40.7128, -74.0060)

LEVEL_ICONS = {
    "Mild": "🟢",
    "Low": "🟢",
    "Moderate": "🟡",
    "Medium": "🟡",
    "Serious": "🟠",
    "High": "🟠",
    "Emergency": "🔴",
}


def _build_llm(settings: Settings):
    if settings.llm_provider == "mistral":
        return MistralLLMAdapter(settings=settings)
    return GeminiLLMAdapter(settings=settings)


def _require_llm_key(settings: Settings) -> bool:
    if not settings.llm_api_key:
        key_name = "MISTRAL_API_KEY" if settings.llm_provider == "mistral" else "GEMINI_API_KEY"
        st.error(
            f"❌ **{settings.llm_provider.title()} API Key Missing**\n\n"
            f"Add `{key_name}` to `.streamlit/secrets.toml` or as an environment variable."
        )
        return False
    return True


def _init_session_state():
    if "analysis_result" not in st.session_state:
        st.session_state.analysis_result = None
    if "diagnosis_id" not in st.session_state:
        st.session_state.diagnosis_id = None
    if "clinics" not in st.session_state:
        st.session_state.clinics = None


def _render_sidebar(settings: Settings, store: DiagnosisStore) -> str:
    st.sidebar.title("⚙️ Settings")

    st.sidebar.markdown("### Model")
    model = settings.mistral_model if settings.llm_provider == "mistral" else settings.gemini_model
    st.sidebar.caption(f"**Provider:** {settings.llm_provider} · **Model:** {model}")

    st.sidebar.markdown("### History")
    user_id = st.sidebar.text_input("Your email (optional, keeps your history)", placeholder="you@example.com")
    if user_id.strip():
        records = store.list_diagnoses(user_id)
        if not records:
            st.sidebar.caption("No saved analyses yet.")
        for record in records[:10]:
            label = f"{record.created_at:%Y-%m-%d %H:%M} · {record.species}"
            with st.sidebar.expander(label):
                st.markdown(f"**Symptoms:** {record.symptoms}")
                for condition in record.analysis.conditions:
                    st.markdown(f"- {condition.name} ({condition.level})")
                if record.feedback:
                    st.caption(f"Your rating: {record.feedback.rating}/5")
    return user_id.strip()


def _render_intake_form() -> Optional[tuple]:
    with st.form("intake"):
        pet_type = st.selectbox("Pet type", PET_TYPES)
        custom_type = st.text_input("If other, which animal?")
        col1, col2, col3 = st.columns(3)
        age = col1.text_input("Age", placeholder="e.g., 3 years")
        weight = col2.text_input("Weight", placeholder="e.g., 12 kg")
        breed = col3.text_input("Breed")
        symptoms = st.text_area("Describe the symptoms", height=150)
        flow_label = st.radio(
            "Analysis type",
            ["Clinical assessment", "Detailed analysis"],
            horizontal=True,
        )
        submitted = st.form_submit_button("🔬 Analyze")

    if not submitted:
        return None

    species = custom_type if pet_type == "Other" else pet_type
    intake = PetIntake(species=species, age=age, weight=weight, breed=breed, symptoms=symptoms)
    flow = AnalysisFlow.CLINICAL if flow_label == "Clinical assessment" else AnalysisFlow.GENERIC
    return intake, flow


def format_analysis_markdown(analysis: Analysis) -> str:
    """Format an analysis as a markdown report."""
    lines = ["## 🏥 Possible Conditions (NOT a diagnosis)"]
    for condition in analysis.conditions:
        icon = LEVEL_ICONS.get(condition.level, "🔵")
        lines.append(f"**{icon} {condition.name}** ({condition.level})")
        if condition.description:
            lines.append(f"- {condition.description}")
    lines.append("")

    sections = [
        ("🩺 Clinical Assessment", analysis.assessment_text),
        ("🧪 Recommended Diagnostics", analysis.diagnostics_text),
        ("🏠 Home Care Recommendations", analysis.care_text),
        ("🚨 When to Seek Veterinary Care", analysis.escalation_text),
    ]
    if analysis.long_term_text is not None:
        sections.append(("📅 Long-Term Management", analysis.long_term_text))

    for title, text in sections:
        lines.append(f"## {title}")
        lines.append(text)
        lines.append("")

    lines.append("---")
    lines.append("⚠️ **Reminder:** Always consult a licensed veterinarian.")
    return "\n".join(lines)


def format_clinics_markdown(clinics: List[Clinic]) -> str:
    if not clinics:
        return "No veterinary clinics found nearby. Try increasing the search radius."
    lines = []
    for clinic in clinics:
        lines.append(f"**{clinic.name}** · {clinic.distance_km:.1f} km")
        lines.append(f"- 📍 {clinic.address}")
        if clinic.phone:
            lines.append(f"- 📞 {clinic.phone}")
        if clinic.website:
            lines.append(f"- 🌐 {clinic.website}")
        lines.append(f"- [Directions]({clinic.directions_url})")
        lines.append("")
    return "\n".join(lines)


def _render_feedback(store: DiagnosisStore, user_id: str):
    if not user_id or not st.session_state.diagnosis_id:
        return
    with st.form("feedback"):
        st.markdown("### Was this helpful?")
        rating = st.slider("Rating", 1, 5, 4)
        comment = st.text_input("Comment (optional)")
        if st.form_submit_button("Send feedback"):
            ok, message = store.add_feedback(st.session_state.diagnosis_id, user_id, rating, comment)
            if ok:
                st.success(message)
            else:
                st.error(message)


def _render_clinic_search(settings: Settings):
    st.markdown("## 📍 Nearby Veterinary Clinics")
    col1, col2, col3 = st.columns(3)
    lat = col1.number_input("Latitude", value=DEFAULT_LOCATION[0], format="%.5f")
    lon = col2.number_input("Longitude", value=DEFAULT_LOCATION[1], format="%.5f")
    radius_km = col3.number_input(
        "Radius (km)", min_value=1, max_value=50, value=min(50, max(1, settings.clinic_search_radius_m // 1000))
    )

    if st.button("Find clinics"):
        finder = ClinicFinder(OverpassClinicSearchAdapter(settings=settings))
        try:
            with st.spinner("🔎 Searching nearby clinics..."):
                st.session_state.clinics = finder.find_nearby(lat, lon, int(radius_km) * 1000)
        except TriageError as e:
            logger.warning("Clinic search failed: %s", e)
            st.error(f"{e} Showing example results instead.")
            st.session_state.clinics = ClinicFinder(MockClinicSearchAdapter()).find_nearby(lat, lon)

    if st.session_state.clinics is not None:
        st.markdown(format_clinics_markdown(st.session_state.clinics))


def main():
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    st.set_page_config(page_title="Pet Symptom Triage", page_icon="🐾")

    if not _require_llm_key(settings):
        st.stop()

    store = DiagnosisStore(storage_path=settings.diagnosis_store_path)
    _init_session_state()
    user_id = _render_sidebar(settings, store)

    st.markdown("# 🐾 Pet Symptom Triage")
    st.info(DISCLAIMER)

    submission = _render_intake_form()
    if submission is not None:
        intake, flow = submission
        usecase = PetSymptomAnalysisUseCase(llm=_build_llm(settings))
        try:
            with st.spinner("🔬 Analyzing your pet's symptoms..."):
                analysis = usecase.analyze(intake, flow)
            st.session_state.analysis_result = analysis
            st.session_state.diagnosis_id = None
            if user_id:
                st.session_state.diagnosis_id = store.create_diagnosis(user_id, intake, analysis).id
        except TriageError as e:
            logger.warning("Analysis failed: %s", e)
            st.error(f"❌ {e}")

    analysis = st.session_state.analysis_result
    if analysis is not None:
        st.markdown(format_analysis_markdown(analysis))
        with st.expander("Full AI response"):
            st.text(analysis.raw_response)
        _render_feedback(store, user_id)

    _render_clinic_search(settings)


if __name__ == "__main__":
    main()

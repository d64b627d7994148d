from typing import Union

from src.application.schemas import GenerationConfig
from src.domain.models import AnalysisFlow, PetIntake


NOT_SPECIFIED = "Not specified"

CLINICAL_INSTRUCTIONS = (
    "Please provide a professional veterinary assessment with the following sections clearly labeled:\n\n"
    "1. POSSIBLE CONDITIONS: List the 3 most likely conditions in order of probability. "
    "For each condition, include a severity rating (Mild, Moderate, Serious, or Emergency).\n\n"
    "2. CLINICAL ASSESSMENT: Explain how the reported symptoms connect to the possible conditions, "
    "focusing on the physiological mechanisms involved.\n\n"
    "3. RECOMMENDED DIAGNOSTICS: List the diagnostic tests that would best confirm or rule out "
    "the conditions.\n\n"
    "4. HOME CARE RECOMMENDATIONS: Give specific, actionable advice for managing the pet's "
    "condition at home.\n\n"
    "5. VETERINARY CARE INDICATORS: State which symptoms or developments require immediate "
    "professional veterinary attention.\n\n"
    "Format your response in plain text without markdown formatting. Be concise but thorough, "
    "and keep explanations accessible to pet owners."
)

GENERIC_INSTRUCTIONS = (
    "Please provide a thorough response with:\n"
    "1. A detailed analysis of the symptoms with physiological explanations where relevant\n"
    "2. Possible conditions (4-5 if applicable) with probability levels (High, Medium, Low)\n"
    "3. A description of each condition: clinical signs, typical progression, complications and prognosis\n"
    "4. Recommendations for the pet owner organized by urgency, one bullet point per recommendation, "
    "including timeframes for when to seek veterinary care\n"
    "5. Potential diagnostic tests that would help confirm the diagnosis\n"
    "6. Long-term management considerations if applicable\n\n"
    "Format the response in a structured way that can be parsed easily, using markdown headings "
    "for each section."
)

# Clinical answers are short and tightly sampled; generic ones are long and exhaustive.
GENERATION_PRESETS = {
    AnalysisFlow.CLINICAL: GenerationConfig(temperature=0.4, top_p=0.8, top_k=40, max_output_tokens=1024),
    AnalysisFlow.GENERIC: GenerationConfig(temperature=0.7, top_p=0.9, top_k=40, max_output_tokens=4096),
}


def generation_config_for(flow: Union[AnalysisFlow, str]) -> GenerationConfig:
    return GENERATION_PRESETS[AnalysisFlow(flow)].model_copy()


def build_clinical_prompt(intake: PetIntake) -> str:
    lines = [
        f"You are an experienced veterinarian with specialized knowledge in {intake.species} health issues. "
        "You provide accurate, professional assessments based on symptoms described by pet owners.",
        "",
        "PET INFORMATION:",
        "- Species: " + str(intake.species),
        "- Age: " + (intake.age or NOT_SPECIFIED),
        "- Weight: " + (intake.weight or NOT_SPECIFIED),
        "- Breed: " + (intake.breed or NOT_SPECIFIED),
        "",
        "REPORTED SYMPTOMS AND CONCERNS:",
        f'"{intake.symptoms}"',
        "",
        CLINICAL_INSTRUCTIONS,
    ]
    return "\n".join(lines)


def build_generic_prompt(intake: PetIntake) -> str:
    details = [
        f"Age: {intake.age}" if intake.age else None,
        f"Weight: {intake.weight}" if intake.weight else None,
        f"Breed: {intake.breed}" if intake.breed else None,
    ]
    details = [d for d in details if d]
    lines = [
        f"I need a comprehensive veterinary analysis for a {intake.species} "
        f"with the following symptoms: {intake.symptoms}.",
    ]
    if details:
        lines.append("Pet details: " + ", ".join(details) + ".")
    lines.extend(["", GENERIC_INSTRUCTIONS])
    return "\n".join(lines)


def build_prompt(intake: PetIntake, flow: Union[AnalysisFlow, str]) -> str:
    if AnalysisFlow(flow) is AnalysisFlow.CLINICAL:
        return build_clinical_prompt(intake)
    return build_generic_prompt(intake)

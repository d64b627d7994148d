"""Heuristic parser that turns a free-text model answer into an Analysis.

The generator's formatting is not fixed, so extraction is best effort:

1. every line is tagged with the section it belongs to in a single greedy
   pass over the text (``tag_lines``),
2. conditions are pulled from the conditions section with a fixed-priority
   rule list, then descriptions are backfilled in a second pass,
3. the remaining sections are captured as normalized plain-text blocks.

Nothing in this module raises on odd input. Missing pieces resolve to fixed
fallback values so the caller always has something to show.
"""
import logging
import re
from functools import lru_cache
from typing import Dict, List, NamedTuple, Optional, Pattern, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .models import Analysis, AnalysisFlow, Condition


logger = logging.getLogger(__name__)


CONDITIONS = "conditions"
DESCRIPTION = "description"
ASSESSMENT = "assessment"
DIAGNOSTICS = "diagnostics"
CARE = "care"
ESCALATION = "escalation"
LONG_TERM = "long_term"

NOT_SPECIFIED = "Not specified"
UNSPECIFIED_CONDITION = "Unspecified Condition"
SENTINEL_LEVEL = "Medium"
SENTINEL_DESCRIPTION = (
    "The AI response did not contain clearly formatted conditions. "
    "Please consult with a veterinarian for a proper diagnosis."
)

FALLBACK_TEXT = {
    ASSESSMENT: (
        "No clinical assessment provided. A veterinarian can explain how the "
        "observed symptoms relate to possible conditions after an examination."
    ),
    DIAGNOSTICS: (
        "No specific diagnostic tests provided. A veterinarian would determine "
        "appropriate tests based on physical examination."
    ),
    CARE: (
        "No specific recommendations provided. Please consult with a veterinarian "
        "for proper guidance based on your pet's symptoms."
    ),
    ESCALATION: (
        "No specific warning signs provided. Contact a veterinarian immediately if "
        "symptoms worsen or your pet stops eating or drinking."
    ),
    LONG_TERM: (
        "No specific long-term management information provided. A veterinarian would "
        "develop an appropriate long-term care plan based on diagnosis."
    ),
}

CARE_NOTE = (
    "Important Note: This analysis is provided as guidance only. Please consult with "
    "a licensed veterinarian for proper diagnosis and treatment."
)

URGENCY_CUES = ("immediately", "emergency", "urgent", "within 24 hours", "right away")

_LABEL_WORDS = {"probability", "severity", "likelihood", "condition", "conditions", "diagnosis"}


class SectionRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    headings: Tuple[str, ...]
    # Words that keep a markdown heading inside the section.
    keywords: Tuple[str, ...] = ()
    ends_at_markdown_heading: bool = False
    # Only match on short, heading-shaped lines (for phrases common in prose).
    heading_shaped_only: bool = False


class FlowSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    flow: AnalysisFlow
    vocabulary: Tuple[str, ...]
    sections: Tuple[SectionRule, ...]
    closers: Tuple[str, ...] = ()
    untagged_list_items: bool = False
    sentinel_condition: bool = False
    care_note: bool = False
    escalation_from_care: bool = False

    def rule_for(self, tag: Optional[str]) -> Optional[SectionRule]:
        for rule in self.sections:
            if rule.tag == tag:
                return rule
        return None


_CONDITION_HEADINGS = ("possible conditions", "potential diagnoses", "possible diagnoses")
_DIAGNOSTIC_HEADINGS = ("recommended diagnostics", "diagnostic tests", "potential tests", "recommended tests")
_CARE_HEADINGS = ("home care recommendations", "recommendations", "advice for pet owner", "advice to pet owner")

CLINICAL_SCHEMA = FlowSchema(
    flow=AnalysisFlow.CLINICAL,
    vocabulary=("Mild", "Moderate", "Serious", "Emergency"),
    sections=(
        SectionRule(tag=CONDITIONS, headings=_CONDITION_HEADINGS),
        SectionRule(tag=ASSESSMENT, headings=("clinical assessment",)),
        SectionRule(tag=DIAGNOSTICS, headings=_DIAGNOSTIC_HEADINGS),
        SectionRule(tag=CARE, headings=_CARE_HEADINGS),
        SectionRule(tag=ESCALATION, headings=("veterinary care indicators",)),
    ),
    closers=("disclaimer",),
    untagged_list_items=True,
)

GENERIC_SCHEMA = FlowSchema(
    flow=AnalysisFlow.GENERIC,
    vocabulary=("High", "Medium", "Low"),
    sections=(
        SectionRule(tag=CONDITIONS, headings=_CONDITION_HEADINGS),
        SectionRule(
            tag=DESCRIPTION,
            headings=("description of each condition", "description"),
            heading_shaped_only=True,
        ),
        SectionRule(
            tag=ASSESSMENT,
            headings=(
                "clinical assessment",
                "analysis of the symptoms",
                "analysis of symptoms",
                "symptom analysis",
                "detailed analysis",
            ),
            keywords=("analysis", "assessment", "symptom"),
            ends_at_markdown_heading=True,
        ),
        SectionRule(
            tag=DIAGNOSTICS,
            headings=_DIAGNOSTIC_HEADINGS,
            keywords=("test", "diagnos"),
            ends_at_markdown_heading=True,
        ),
        SectionRule(
            tag=CARE,
            headings=_CARE_HEADINGS,
            keywords=("recommendation", "advice"),
            ends_at_markdown_heading=True,
        ),
        SectionRule(
            tag=ESCALATION,
            headings=(
                "veterinary care indicators",
                "when to seek veterinary care",
                "when to seek immediate",
                "when to see a vet",
            ),
            keywords=("veterinary", "warning", "emergency", "urgent"),
            ends_at_markdown_heading=True,
        ),
        SectionRule(
            tag=LONG_TERM,
            headings=("long-term management", "long term management", "ongoing care", "management considerations"),
            keywords=("management", "care", "long-term"),
            ends_at_markdown_heading=True,
        ),
    ),
    closers=("disclaimer",),
    sentinel_condition=True,
    care_note=True,
    escalation_from_care=True,
)

_SCHEMAS = {
    AnalysisFlow.CLINICAL: CLINICAL_SCHEMA,
    AnalysisFlow.GENERIC: GENERIC_SCHEMA,
}


def schema_for(flow: Union[AnalysisFlow, str]) -> FlowSchema:
    return _SCHEMAS[AnalysisFlow(flow)]


class TaggedLine(NamedTuple):
    tag: Optional[str]
    text: str  # content contributed to ``tag``; "" for blank or pure heading lines
    line: str  # original line, stripped
    heading: bool


_MARKDOWN_HEADING = re.compile(r"^#+\s+[A-Z]")
_LIST_MARKER = re.compile(r"^(?:[*•\-–]|\d+[.)])\s+")
_BULLET = re.compile(r"^[*•\-–]\s+")
_NUMBERED = re.compile(r"^\d+[.)]\s+")
_NEW_ITEM = re.compile(r"^(?:[*•\-–]\s*[*_]*[A-Z]|\d+[.)]\s)")
_INLINE_AFTER_HEADING = re.compile(r"^[^:.!?]{0,40}:[\s*_]*(.+)$")
_TAG_LABEL = r"(?:(?:probability|severity|likelihood)\s*[:\-]?\s*)?"


# --- Section segmentation ---------------------------------------------------

def _heading_shaped(lowered: str) -> bool:
    if lowered.startswith("#"):
        return True
    words = re.sub(r"^(?:[*•\-–#]+|\d+[.)])\s*", "", lowered).strip(" *_").split()
    return len(words) <= 6 or (lowered.rstrip(" *_").endswith(":") and len(words) <= 10)


def _match_heading(lowered: str, schema: FlowSchema, active: Optional[str]) -> Optional[Tuple[SectionRule, str]]:
    for rule in schema.sections:
        if rule.tag == active:
            continue
        if rule.heading_shaped_only and not _heading_shaped(lowered):
            continue
        for phrase in rule.headings:
            if phrase in lowered:
                return rule, phrase
    return None


def _inline_remainder(line: str, lowered: str, phrase: str) -> str:
    """Text after ``Heading:`` on the heading line itself, if any."""
    rest = line[lowered.find(phrase) + len(phrase):]
    match = _INLINE_AFTER_HEADING.match(rest)
    if not match:
        return ""
    return match.group(1).strip().strip("*_").strip()


def _leaves_section(line: str, lowered: str, rule: Optional[SectionRule]) -> bool:
    if rule is None or not rule.ends_at_markdown_heading:
        return False
    if not _MARKDOWN_HEADING.match(line):
        return False
    return not any(keyword in lowered for keyword in rule.keywords)


def tag_lines(text: str, schema: FlowSchema) -> List[TaggedLine]:
    """Tag each line with the section it belongs to.

    Single greedy pass: a line carrying the heading phrase of another section
    switches the active section, a closer phrase clears it, and sections with
    ``ends_at_markdown_heading`` also end at an unrelated ``# Heading`` line.
    Exactly one entry is produced per input line.
    """
    tagged: List[TaggedLine] = []
    active: Optional[str] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        lowered = line.lower()

        heading = _match_heading(lowered, schema, active) if line else None
        if heading is not None:
            rule, phrase = heading
            active = rule.tag
            tagged.append(TaggedLine(active, _inline_remainder(line, lowered, phrase), line, True))
            continue

        if active is not None and line:
            if any(closer in lowered for closer in schema.closers) or _leaves_section(
                line, lowered, schema.rule_for(active)
            ):
                active = None
                tagged.append(TaggedLine(None, "", line, True))
                continue

        tagged.append(TaggedLine(active, line, line, False))

    return tagged


def section_lines(tagged: Sequence[TaggedLine], tag: str) -> List[str]:
    return [entry.text for entry in tagged if entry.tag == tag and entry.text]


# --- Condition extraction ---------------------------------------------------

class _ConditionPatterns(NamedTuple):
    rules: Tuple[Pattern, ...]
    vocabulary_word: Pattern
    canonical: Dict[str, str]


@lru_cache(maxsize=None)
def _patterns(vocabulary: Tuple[str, ...]) -> _ConditionPatterns:
    words = "|".join(re.escape(word) for word in vocabulary)
    tag = rf"(?P<tag>{words})\b"
    paren_tag = rf"\(\s*[*_]*{_TAG_LABEL}{tag}[^)]*\)"

    table_row = re.compile(rf"^\|\s*(?P<name>[^|]+?)\s*\|\s*[*_]*\s*{_TAG_LABEL}{tag}[^|]*\|", re.I)
    dash_or_colon = re.compile(
        rf"^(?P<name>.+?)(?:\s+[-–—]\s*|\s*:\s*)[*_]*{tag}[*_]*"
        rf"(?:\s+(?:probability|severity|likelihood))?[*_]*\s*(?:$|[(\[,.;:\-–—])",
        re.I,
    )
    parenthesized = re.compile(rf"^(?![*•\-–]\s|\d+[.)]\s)(?P<name>[^(|]+?)\s*{paren_tag}", re.I)
    listed = re.compile(rf"^(?:[*•\-–]|\d+[.)])\s+(?P<name>[^(|]+?)\s*{paren_tag}", re.I)

    return _ConditionPatterns(
        rules=(table_row, dash_or_colon, parenthesized, listed),
        vocabulary_word=re.compile(rf"\b({words})\b", re.I),
        canonical={word.lower(): word for word in vocabulary},
    )


def _strip_emphasis(text: str) -> str:
    text = text.replace("**", "").replace("__", "")
    text = re.sub(r"(?<![\w*])\*(?!\s)([^*]+?)(?<!\s)\*(?![\w*])", r"\1", text)
    return re.sub(r"^#+\s*", "", text).strip()


def _clean_name(text: str) -> str:
    if "|" in text:
        text = next((cell for cell in text.split("|") if cell.strip()), "")
    name = _strip_emphasis(text.strip())
    name = _LIST_MARKER.sub("", name)
    name = re.sub(r"[\s\-–—:(*_]+$", "", name)
    return name.strip(" *_")


def _is_table_header(line: str) -> bool:
    return "|" in line and ("Condition" in line or "---" in line)


def _match_condition(line: str, patterns: _ConditionPatterns) -> Optional[Condition]:
    for rule in patterns.rules:
        match = rule.match(line)
        if not match:
            continue
        name = _clean_name(match.group("name"))
        if not name or name.lower() in _LABEL_WORDS:
            continue
        return Condition(name=name, level=patterns.canonical[match.group("tag").lower()])
    return None


def _split_at_vocabulary_word(lines: Sequence[str], patterns: _ConditionPatterns) -> List[Condition]:
    conditions: List[Condition] = []
    for line in lines:
        match = patterns.vocabulary_word.search(line)
        if not match:
            continue
        name = _clean_name(line[:match.start()])
        if name and name.lower() not in _LABEL_WORDS:
            conditions.append(Condition(name=name, level=patterns.canonical[match.group(1).lower()]))
    return conditions


def _untagged_list_items(lines: Sequence[str]) -> List[Condition]:
    conditions: List[Condition] = []
    for line in lines:
        if not _LIST_MARKER.match(_strip_emphasis(line)):
            continue
        name = _clean_name(line)
        if name:
            conditions.append(Condition(name=name, level=NOT_SPECIFIED))
    return conditions


def _conditions_from(tagged: Sequence[TaggedLine], schema: FlowSchema) -> List[Condition]:
    patterns = _patterns(schema.vocabulary)
    conditions: List[Condition] = []
    unmatched: List[str] = []

    for line in section_lines(tagged, CONDITIONS):
        if _is_table_header(line):
            continue
        condition = _match_condition(line, patterns)
        if condition is not None:
            conditions.append(condition)
        else:
            unmatched.append(line)

    if not conditions:
        conditions = _split_at_vocabulary_word(unmatched, patterns)
        if conditions:
            logger.debug("Conditions recovered by vocabulary split: %d", len(conditions))
    if not conditions and schema.untagged_list_items:
        conditions = _untagged_list_items(unmatched)

    if conditions:
        conditions = _backfill_descriptions(conditions, tagged, patterns)
    elif schema.sentinel_condition:
        logger.warning("No conditions found in model response; using fallback condition.")
        conditions = [
            Condition(name=UNSPECIFIED_CONDITION, level=SENTINEL_LEVEL, description=SENTINEL_DESCRIPTION)
        ]
    return conditions


# --- Description backfill ---------------------------------------------------

def _clean_description(text: str) -> str:
    return _strip_emphasis(text).strip(" *_")


def _mentions_condition(text: str, name: str) -> bool:
    lowered_name = name.lower()
    lowered = text.lower()
    trimmed = re.sub(r"^#*\s*(?:(?:[*•\-–]|\d+[.)])\s*)?[*_]*", "", lowered)
    return (
        trimmed.startswith(lowered_name)
        or f"**{lowered_name}**" in lowered
        or f"*{lowered_name}*" in lowered
    )


def _collect_description(tagged: Sequence[TaggedLine], index: int, conditions: Sequence[Condition]) -> str:
    first = tagged[index].text
    parts: List[str] = []
    colon = first.find(":")
    if colon != -1:
        parts.append(first[colon + 1:])

    for entry in tagged[index + 1:]:
        if entry.tag != DESCRIPTION or not entry.text or entry.heading:
            break
        if _NEW_ITEM.match(entry.text) or "recommendation" in entry.text.lower():
            break
        if any(_mentions_condition(entry.text, condition.name) for condition in conditions):
            break
        parts.append(entry.text)

    return _clean_description(" ".join(part.strip() for part in parts))


def _descriptions_from_section(tagged: Sequence[TaggedLine], conditions: Sequence[Condition]) -> List[str]:
    descriptions = [""] * len(conditions)
    for index, entry in enumerate(tagged):
        if entry.tag != DESCRIPTION or not entry.text:
            continue
        for position, condition in enumerate(conditions):
            if descriptions[position] or not _mentions_condition(entry.text, condition.name):
                continue
            descriptions[position] = _collect_description(tagged, index, conditions)
            break
    return descriptions


def _description_after_name(name: str, tagged: Sequence[TaggedLine], patterns: _ConditionPatterns) -> str:
    lowered_name = name.lower()
    for index, entry in enumerate(tagged):
        if lowered_name not in entry.line.lower():
            continue
        following = next((later for later in tagged[index + 1:] if later.line), None)
        if following is None or following.heading:
            return ""
        if patterns.vocabulary_word.search(following.line) or "probability" in following.line.lower():
            return ""
        return _clean_description(following.line)
    return ""


def _backfill_descriptions(
    conditions: List[Condition], tagged: Sequence[TaggedLine], patterns: _ConditionPatterns
) -> List[Condition]:
    descriptions = _descriptions_from_section(tagged, conditions)
    if not any(descriptions):
        descriptions = [_description_after_name(condition.name, tagged, patterns) for condition in conditions]
    return [
        condition.model_copy(update={"description": description})
        for condition, description in zip(conditions, descriptions)
    ]


# --- Free-text sections -----------------------------------------------------

def normalize_block(lines: Sequence[str]) -> str:
    """Join section lines into plain text with one bullet style and paragraph breaks."""
    out: List[str] = []
    for line in lines:
        bullet = _BULLET.match(line)
        if bullet:
            out.append("• " + _strip_emphasis(line[bullet.end():]))
            continue
        line = _strip_emphasis(line)
        if not line:
            continue
        if _NUMBERED.match(line):
            out.append(line)
        elif line[0].isupper() and out and out[-1] != "":
            out.extend(["", line])
        else:
            out.append(line)
    return "\n".join(out).strip()


def _starts_with_heading(block: str, schema: FlowSchema) -> bool:
    first = block.strip().splitlines()[0].strip()
    lowered = first.lower()
    return bool(
        _MARKDOWN_HEADING.match(first)
        or _match_heading(lowered, schema, None)
        or any(closer in lowered for closer in schema.closers)
    )


def _regex_fallback(text: str, rule: SectionRule, schema: FlowSchema) -> str:
    # Only the phrase is case-insensitive; the lookahead stops at a capitalized line.
    for phrase in rule.headings:
        for match in re.finditer(rf"(?i:{re.escape(phrase)})[:\s]+([\s\S]+?)(?=\n\n|\n[A-Z#]|$)", text):
            block = match.group(1).strip()
            if not block or _starts_with_heading(block, schema):
                continue
            logger.debug("Section %s recovered by pattern search on %r", rule.tag, phrase)
            return normalize_block([line.strip() for line in block.splitlines()])
    return ""


def _section_text(
    tagged: Sequence[TaggedLine], text: str, rule: Optional[SectionRule], schema: FlowSchema
) -> str:
    if rule is None:
        return ""
    lines = section_lines(tagged, rule.tag)
    if lines:
        return normalize_block(lines)
    return _regex_fallback(text, rule, schema)


def _urgent_lines(care_lines: Sequence[str]) -> str:
    urgent = [line for line in care_lines if any(cue in line.lower() for cue in URGENCY_CUES)]
    return normalize_block(urgent) if urgent else ""


def _care_with_note(care: str) -> str:
    lowered = care.lower()
    if "consult" in lowered or "veterinarian" in lowered:
        return care
    return f"{care}\n\n{CARE_NOTE}"


# --- Public API -------------------------------------------------------------

def extract_conditions(raw_response: Optional[str], flow: Union[AnalysisFlow, str]) -> List[Condition]:
    schema = schema_for(flow)
    return _conditions_from(tag_lines(raw_response or "", schema), schema)


def extract_section_text(raw_response: Optional[str], tag: str, flow: Union[AnalysisFlow, str]) -> str:
    """Plain text of one free-text section, or its fallback sentence."""
    schema = schema_for(flow)
    text = raw_response or ""
    extracted = _section_text(tag_lines(text, schema), text, schema.rule_for(tag), schema)
    return extracted or FALLBACK_TEXT.get(tag, "")


def parse_response(raw_response: Optional[str], flow: Union[AnalysisFlow, str]) -> Analysis:
    """Parse a raw model answer into an Analysis for ``flow``.

    Never raises on malformed text: every text field falls back to a fixed
    sentence, and the generic flow always yields at least one condition.
    """
    schema = schema_for(flow)
    text = raw_response if raw_response is not None else ""
    tagged = tag_lines(text, schema)

    conditions = _conditions_from(tagged, schema)
    assessment = _section_text(tagged, text, schema.rule_for(ASSESSMENT), schema)
    diagnostics = _section_text(tagged, text, schema.rule_for(DIAGNOSTICS), schema)
    care = _section_text(tagged, text, schema.rule_for(CARE), schema)
    escalation = _section_text(tagged, text, schema.rule_for(ESCALATION), schema)

    if not escalation and schema.escalation_from_care:
        escalation = _urgent_lines(section_lines(tagged, CARE))
    if care and schema.care_note:
        care = _care_with_note(care)

    long_term: Optional[str] = None
    long_term_rule = schema.rule_for(LONG_TERM)
    if long_term_rule is not None:
        long_term = _section_text(tagged, text, long_term_rule, schema) or FALLBACK_TEXT[LONG_TERM]

    logger.debug(
        "Parsed %s response: %d condition(s), sections found: %s",
        schema.flow.value,
        len(conditions),
        sorted({entry.tag for entry in tagged if entry.tag}),
    )

    return Analysis(
        flow=schema.flow,
        conditions=conditions,
        assessment_text=assessment or FALLBACK_TEXT[ASSESSMENT],
        diagnostics_text=diagnostics or FALLBACK_TEXT[DIAGNOSTICS],
        care_text=care or FALLBACK_TEXT[CARE],
        escalation_text=escalation or FALLBACK_TEXT[ESCALATION],
        long_term_text=long_term,
        raw_response=text,
    )

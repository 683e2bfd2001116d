"""
MCQ Option Generators Package.

Generators ask the LLM for four multiple-choice options for a fill-in-the-blank
question:
- context: distractors that fit the sentence context (Urdu)
- similar: distractors from the same category as the answer (Arabic, Urdu)
- quranic: Quranic verse distractors of a chosen type (Arabic)
"""
import enum
from typing import Dict


class Language(str, enum.Enum):
    ARABIC = "arabic"
    URDU = "urdu"


class DistractorType(str, enum.Enum):
    COLLECTION = "collection"
    DIACRITIC = "diacritic"
    PHONETIC = "phonetic"
    MORPHOLOGICAL = "morphological"
    GRAMMATICAL = "grammatical"
    ALTERNATE_VERSE = "alternate_verse"
    THEMATIC = "thematic"
    COLLOCATIONAL = "collocational"


# Distractor type to prompt template name
DISTRACTOR_TEMPLATES: Dict[DistractorType, str] = {
    DistractorType.COLLECTION: "quranic_verse_distractor_collection",
    DistractorType.DIACRITIC: "quranic_verse_diacritic_distractor",
    DistractorType.PHONETIC: "quranic_verse_phonetic_distractor",
    DistractorType.MORPHOLOGICAL: "quranic_verse_morphological_distractor",
    DistractorType.GRAMMATICAL: "quranic_verse_grammatical_distractor",
    DistractorType.ALTERNATE_VERSE: "quranic_verse_alternate_verse_distractor",
    DistractorType.THEMATIC: "quranic_verse_thematic_distractor",
    DistractorType.COLLOCATIONAL: "quranic_verse_collocational_distractor",
}

# Language to "similar" fill-in-the-blank template name
SIMILAR_TEMPLATES: Dict[Language, str] = {
    Language.ARABIC: "similar_fill_in_the_blank_arabic",
    Language.URDU: "similar_fill_in_the_blank_urdu",
}

CONTEXT_TEMPLATE = "context_mcq_urdu"

# Every generator returns exactly this many options
OPTIONS_PER_QUESTION = 4


def get_distractor_template(distractor_type: DistractorType) -> str:
    """Get the prompt template name for a distractor type."""
    return DISTRACTOR_TEMPLATES[distractor_type]

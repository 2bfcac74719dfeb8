# kiosk/services/questions.py
from __future__ import annotations

import json
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from kiosk.errors import QuestionConfigError
from kiosk.logging import get_logger

log = get_logger(__name__)

QuestionType = Literal["textarea", "emoji-radio", "radio", "radio-with-other", "custom-contact"]

CHOICE_TYPES = {"emoji-radio", "radio", "radio-with-other"}
OTHER_VALUE = "Other"


# ---------- Models ----------

class Option(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: Optional[str] = None
    emoji: Optional[str] = None

    @property
    def display(self) -> str:
        return self.label or self.value


class Question(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: QuestionType
    question: str = ""
    placeholder: str = ""
    required: bool = False
    options: List[Option] = Field(default_factory=list)
    rotating_text: Optional[List[str]] = Field(default=None, alias="rotatingText")

    @field_validator("rotating_text")
    @classmethod
    def _rotating_text_not_empty(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and len(v) == 0:
            raise ValueError("rotatingText must have at least one entry")
        return v

    @model_validator(mode="after")
    def _choices_have_options(self) -> "Question":
        if self.type in CHOICE_TYPES and not self.options:
            raise ValueError(f"question {self.name!r} of type {self.type} needs options")
        return self

    @property
    def other_field(self) -> str:
        """Companion free-text field used by radio-with-other."""
        return f"other_{self.name}"


class Survey(BaseModel):
    model_config = ConfigDict(frozen=True)

    questions: List[Question]

    @field_validator("questions")
    @classmethod
    def _non_empty_unique(cls, v: List[Question]) -> List[Question]:
        if not v:
            raise ValueError("survey needs at least one question")
        seen = set()
        for q in v:
            if q.name in seen:
                raise ValueError(f"duplicate question name {q.name!r}")
            seen.add(q.name)
        return v

    def __len__(self) -> int:
        return len(self.questions)

    def __getitem__(self, index: int) -> Question:
        return self.questions[index]

    @property
    def first(self) -> Question:
        return self.questions[0]


# ---------- Built-in survey ----------

DEFAULT_QUESTIONS = [
    {
        "id": "comments",
        "name": "comments",
        "type": "textarea",
        "question": "1. What did you like about your visit today?",
        "placeholder": "Type your comments here...",
        "required": True,
        "rotatingText": [
            "1. What did you like about your visit today?",
            "1. What could we do better during your next visit?",
            "1. Do you have any general comments or suggestions?",
            "1. What was the most memorable part of your experience?",
        ],
    },
    {
        "id": "satisfaction",
        "name": "satisfaction",
        "type": "emoji-radio",
        "question": "2. Overall, how satisfied were you with your visit today?",
        "required": True,
        "options": [
            {"value": "Sad", "label": "Sad", "emoji": "\U0001F61E"},
            {"value": "Neutral", "label": "Neutral", "emoji": "\U0001F610"},
            {"value": "Happy", "label": "Happy", "emoji": "\U0001F60A"},
        ],
    },
    {
        "id": "location",
        "name": "location",
        "type": "radio-with-other",
        "question": "3. Where are you visiting from today?",
        "required": True,
        "options": [
            {"value": "Lilburn/Gwinnett County"},
            {"value": "Greater Atlanta Area"},
            {"value": "Georgia (outside Atlanta)"},
            {"value": "United States (outside GA)"},
            {"value": "Canada"},
            {"value": "India"},
            {"value": OTHER_VALUE},
        ],
    },
    {
        "id": "age",
        "name": "age",
        "type": "radio",
        "question": "4. Which age group do you belong to?",
        "required": True,
        "options": [
            {"value": "Under 18"},
            {"value": "18-40"},
            {"value": "40-65"},
            {"value": "65+"},
        ],
    },
    {
        "id": "contact",
        "name": "contact",
        "type": "custom-contact",
        "question": "5. Help us stay in touch.",
        "required": True,
    },
]


def build_survey(raw: list) -> Survey:
    try:
        return Survey(questions=raw)
    except ValidationError as e:
        raise QuestionConfigError(str(e)) from e


def load_survey(path: Optional[str] = None) -> Survey:
    """Load questions from a JSON file (a list, or {"questions": [...]}) or fall back to the built-in set."""
    if not path:
        return build_survey(DEFAULT_QUESTIONS)

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise QuestionConfigError(f"Cannot read questions from {path}: {e}") from e

    if isinstance(raw, dict):
        raw = raw.get("questions", [])
    survey = build_survey(raw)
    log.info("Loaded %d questions from %s", len(survey), path)
    return survey

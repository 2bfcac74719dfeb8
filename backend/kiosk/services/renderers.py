# kiosk/services/renderers.py
"""
Page renderers, one per question type.

Each renderer turns a question plus the page's current input into an HTML
fragment, says which input events the page reacts to, and validates the page
before it can be committed. Input is kept per page in a flat `values` dict
(field name -> value); `load`/`commit` translate between that and the
session's form data.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from html import escape
from typing import Any, Callable, Dict, List, Optional, Sequence

from kiosk.logging import get_logger
from kiosk.services.questions import OTHER_VALUE, Question

log = get_logger(__name__)

Handler = Callable[[Dict[str, Any]], None]

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
REQUIRED_MSG = "This field is required."


@dataclass
class PageCallbacks:
    capture: Callable[[str, Any], None]
    discard: Callable[[str], None]
    advance: Callable[[], Any]
    start_rotation: Callable[[Sequence[str]], None]


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (dict, list, tuple, set)):
        return len(value) == 0
    return False


def _error_span(field: str) -> str:
    return f'<span id="{escape(field)}Error" class="error-message hidden"></span>'


class Renderer:
    """Single-field renderer; subclasses override what differs."""

    def fields(self, q: Question) -> List[str]:
        return [q.name]

    def load(self, q: Question, form_data: Dict[str, Any]) -> Dict[str, Any]:
        return {f: form_data[f] for f in self.fields(q) if f in form_data}

    def commit(self, q: Question, values: Dict[str, Any]) -> Dict[str, Any]:
        """Form-data updates for this page; a None value means drop the key."""
        return {q.name: values.get(q.name)}

    def render(self, q: Question, values: Dict[str, Any]) -> str:
        raise NotImplementedError

    def bind_events(self, q: Question, callbacks: PageCallbacks) -> Dict[str, Handler]:
        raise NotImplementedError

    def validate(self, q: Question, values: Dict[str, Any]) -> Dict[str, str]:
        if q.required and is_empty(values.get(q.name)):
            return {q.id: REQUIRED_MSG}
        return {}


class TextareaRenderer(Renderer):
    def render(self, q: Question, values: Dict[str, Any]) -> str:
        text = values.get(q.name) or ""
        return (
            f'<label id="rotatingQuestion" for="{escape(q.id)}" aria-live="polite">{escape(q.question)}</label>'
            f'<textarea id="{escape(q.id)}" name="{escape(q.name)}" rows="4" '
            f'placeholder="{escape(q.placeholder)}">{escape(str(text))}</textarea>'
            f'{_error_span(q.id)}'
        )

    def bind_events(self, q: Question, callbacks: PageCallbacks) -> Dict[str, Handler]:
        if q.rotating_text:
            callbacks.start_rotation(q.rotating_text)
        return {"input": lambda payload: callbacks.capture(q.name, payload.get("value", ""))}


class ChoiceRenderer(Renderer):
    group_class = "radio-group"

    def _option_html(self, q: Question, opt, checked: bool) -> str:
        opt_id = escape(q.id + opt.value)
        return (
            f'<input type="radio" id="{opt_id}" name="{escape(q.name)}" value="{escape(opt.value)}" '
            f'class="visually-hidden"{" checked" if checked else ""}>'
            f'<label for="{opt_id}">{escape(opt.display)}</label>'
        )

    def render(self, q: Question, values: Dict[str, Any]) -> str:
        current = values.get(q.name)
        options = "".join(self._option_html(q, o, o.value == current) for o in q.options)
        return (
            f'<label id="{escape(q.id)}Label">{escape(q.question)}</label>'
            f'<div class="{self.group_class}" role="radiogroup" aria-labelledby="{escape(q.id)}Label">'
            f'{options}</div>'
            f'{_error_span(q.id)}'
        )

    def _accept(self, q: Question, value: Any) -> Optional[str]:
        if value not in {o.value for o in q.options}:
            log.warning("Ignoring unknown option %r for question %s", value, q.name)
            return None
        return value

    def bind_events(self, q: Question, callbacks: PageCallbacks) -> Dict[str, Handler]:
        def on_change(payload: Dict[str, Any]) -> None:
            value = self._accept(q, payload.get("value"))
            if value is None:
                return
            callbacks.capture(q.name, value)
            # A selection counts as pressing "next".
            callbacks.advance()

        return {"change": on_change}


class EmojiRadioRenderer(ChoiceRenderer):
    group_class = "emoji-radio-group"

    def _option_html(self, q: Question, opt, checked: bool) -> str:
        opt_id = escape(q.id + opt.value)
        return (
            f'<input type="radio" id="{opt_id}" name="{escape(q.name)}" value="{escape(opt.value)}" '
            f'class="visually-hidden"{" checked" if checked else ""}>'
            f'<label for="{opt_id}"><span class="emoji">{escape(opt.emoji or "")}</span>'
            f'<span>{escape(opt.display)}</span></label>'
        )


class RadioWithOtherRenderer(ChoiceRenderer):
    group_class = "location-radio-group"

    def fields(self, q: Question) -> List[str]:
        return [q.name, q.other_field]

    def commit(self, q: Question, values: Dict[str, Any]) -> Dict[str, Any]:
        value = values.get(q.name)
        other = values.get(q.other_field) if value == OTHER_VALUE else None
        return {q.name: value, q.other_field: other}

    def render(self, q: Question, values: Dict[str, Any]) -> str:
        other_hidden = "" if values.get(q.name) == OTHER_VALUE else " hidden"
        other_text = values.get(q.other_field) or ""
        other_id = escape(q.other_field)
        return (
            super().render(q, values)
            + f'<div id="other-{escape(q.name)}-container" class="mt-4{other_hidden}">'
            f'<input type="text" id="{other_id}_text" name="{other_id}" value="{escape(str(other_text))}">'
            f'{_error_span(q.other_field + "_text")}</div>'
        )

    def bind_events(self, q: Question, callbacks: PageCallbacks) -> Dict[str, Handler]:
        def on_change(payload: Dict[str, Any]) -> None:
            value = self._accept(q, payload.get("value"))
            if value is None:
                return
            callbacks.capture(q.name, value)
            if value != OTHER_VALUE:
                callbacks.discard(q.other_field)
                callbacks.advance()

        def on_input(payload: Dict[str, Any]) -> None:
            callbacks.capture(q.other_field, payload.get("value", ""))

        return {"change": on_change, "input": on_input}

    def validate(self, q: Question, values: Dict[str, Any]) -> Dict[str, str]:
        errors = super().validate(q, values)
        if values.get(q.name) == OTHER_VALUE and is_empty(values.get(q.other_field)):
            errors[q.other_field + "_text"] = "Please specify your answer."
        return errors


class ContactRenderer(Renderer):
    CONTACT_FIELDS = ("name", "email", "newsletterConsent")

    def fields(self, q: Question) -> List[str]:
        return list(self.CONTACT_FIELDS)

    def load(self, q: Question, form_data: Dict[str, Any]) -> Dict[str, Any]:
        saved = form_data.get(q.name) or {}
        return {f: saved[f] for f in self.CONTACT_FIELDS if saved.get(f)}

    def commit(self, q: Question, values: Dict[str, Any]) -> Dict[str, Any]:
        contact = {f: str(values[f]).strip() for f in self.CONTACT_FIELDS if not is_empty(values.get(f))}
        return {q.name: contact or None}

    def render(self, q: Question, values: Dict[str, Any]) -> str:
        consent = values.get("newsletterConsent") == "Yes"
        email_class = "visible-fields" if consent else "hidden-fields"
        return (
            f'<p class="question">{escape(q.question)}</p>'
            f'<div class="space-y-4"><div>'
            f'<label for="name">Name</label>'
            f'<input type="text" id="name" name="name" value="{escape(str(values.get("name") or ""))}">'
            f'{_error_span("name")}</div>'
            f'<div><input type="checkbox" id="newsletterConsent" name="newsletterConsent" value="Yes"'
            f'{" checked" if consent else ""}>'
            f'<label for="newsletterConsent">Yes, I want to subscribe to updates</label></div>'
            f'<div id="email-field-container" class="{email_class}">'
            f'<label for="email">Email</label>'
            f'<input type="email" id="email" name="email" value="{escape(str(values.get("email") or ""))}"'
            f'{" required" if consent else ""}>'
            f'{_error_span("email")}</div></div>'
        )

    def bind_events(self, q: Question, callbacks: PageCallbacks) -> Dict[str, Handler]:
        def on_input(payload: Dict[str, Any]) -> None:
            field = payload.get("field")
            if field not in ("name", "email"):
                log.warning("Ignoring input for unknown contact field %r", field)
                return
            callbacks.capture(field, payload.get("value", ""))

        def on_consent(payload: Dict[str, Any]) -> None:
            if payload.get("value") in (True, "Yes", "yes", "true", "on"):
                callbacks.capture("newsletterConsent", "Yes")
            else:
                callbacks.discard("newsletterConsent")
                callbacks.discard("email")

        return {"input": on_input, "consent": on_consent}

    def validate(self, q: Question, values: Dict[str, Any]) -> Dict[str, str]:
        errors: Dict[str, str] = {}
        if q.required and is_empty(values.get("name")):
            errors["name"] = "Your name is required."
        if values.get("newsletterConsent") == "Yes":
            email = str(values.get("email") or "").strip()
            if not EMAIL_RE.match(email):
                errors["email"] = "Please enter a valid email address to subscribe."
        return errors


RENDERERS: Dict[str, Renderer] = {
    "textarea": TextareaRenderer(),
    "emoji-radio": EmojiRadioRenderer(),
    "radio": ChoiceRenderer(),
    "radio-with-other": RadioWithOtherRenderer(),
    "custom-contact": ContactRenderer(),
}


def get_renderer(question_type: str) -> Optional[Renderer]:
    return RENDERERS.get(question_type)


def missing_renderer_html(question_type: str) -> str:
    return f'<p class="text-red-500">Error: Question type "{escape(question_type)}" not found.</p>'


COMPLETION_HTML = (
    '<div class="checkmark-container">'
    '<div class="checkmark-circle"><div class="checkmark-icon">&#10003;</div></div>'
    '<h2>Thank You!</h2>'
    '<p>Your feedback has been saved.</p>'
    '</div>'
)

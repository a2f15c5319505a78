"""
Declarative request validation.

A rule names a body field, a check and the message reported when the check
fails. Every rule of a rule set runs and all failures are reported together,
in rule order, so a client sees the complete list of problems at once.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type, Union

import structlog
from email_validator import EmailNotValidError, validate_email
from fastapi import Request
from pydantic import BaseModel, HttpUrl, TypeAdapter, ValidationError

from api.config import config
from api.exceptions import RequestValidationFailed
from api.models import FieldError, Role

logger = structlog.get_logger(__name__)

# (value, whole payload) -> passed?
Check = Callable[[Any, Mapping[str, Any]], bool]
Bound = Union[int, Callable[[], int]]

PASSWORD_SYMBOLS = '!@#$%^&*(),.?":{}|<>'

_http_url = TypeAdapter(HttpUrl)


@dataclass(frozen=True)
class Rule:
    """A single field check."""
    field: str
    check: Check
    message: str

    def run(self, payload: Mapping[str, Any]) -> Optional[FieldError]:
        if self.check(payload.get(self.field), payload):
            return None
        return FieldError(field=self.field, message=self.message)


def not_empty() -> Check:
    """Non-blank text. Numbers count as their string form."""
    def check(value, payload):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        return isinstance(value, str) and value.strip() != ""
    return check


def is_email() -> Check:
    def check(value, payload):
        if not isinstance(value, str):
            return False
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            return False
        return True
    return check


def min_length(length: int) -> Check:
    def check(value, payload):
        return isinstance(value, str) and len(value) >= length
    return check


def matches(pattern: str) -> Check:
    compiled = re.compile(pattern)

    def check(value, payload):
        return isinstance(value, str) and compiled.search(value) is not None
    return check


def one_of(choices: Sequence[str]) -> Check:
    allowed = frozenset(choices)

    def check(value, payload):
        return isinstance(value, str) and value in allowed
    return check


def _resolve(bound: Bound) -> int:
    return bound() if callable(bound) else bound


def int_range(minimum: Bound, maximum: Bound) -> Check:
    """
    Integer (or integer string) within [minimum, maximum].

    Bounds given as callables are evaluated on every check.
    """
    def check(value, payload):
        if isinstance(value, bool):
            return False
        if isinstance(value, str):
            if not re.fullmatch(r"[+-]?\d+", value.strip()):
                return False
            value = int(value)
        if not isinstance(value, int):
            return False
        return _resolve(minimum) <= value <= _resolve(maximum)
    return check


def is_url() -> Check:
    def check(value, payload):
        if not isinstance(value, str):
            return False
        try:
            _http_url.validate_python(value)
        except ValidationError:
            return False
        return True
    return check


def current_year() -> int:
    return datetime.now().year


signup_rules: List[Rule] = [
    Rule("email", is_email(), "Email is not valid"),
    Rule("password", min_length(8), "Password must be at least 8 characters long"),
    Rule("password", matches(r"[a-z]"), "Password must contain at least one lowercase letter"),
    Rule("password", matches(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    Rule("password", matches(r"[0-9]"), "Password must contain at least one number"),
    Rule("password", matches("[" + re.escape(PASSWORD_SYMBOLS) + "]"),
         "Password must contain at least one special character"),
    Rule("name", not_empty(), "Name is required"),
    Rule("role", one_of([role.value for role in Role]),
         "Role must be one of: " + ", ".join(role.value for role in Role)),
]

login_rules: List[Rule] = [
    Rule("email", is_email(), "Email is not valid"),
    Rule("password", not_empty(), "Password is required"),
]

book_rules: List[Rule] = [
    Rule("title", not_empty(), "Title is required"),
    Rule("genre", not_empty(), "Genre is required"),
    Rule("language", not_empty(), "Language is required"),
    Rule("ratings", not_empty(), "Ratings are required"),
    Rule("coverPage", is_url(), "Cover page must be a valid URL"),
    Rule("year", int_range(lambda: config.min_publication_year, lambda: current_year()),
         "Year must be a valid integer and within a reasonable range"),
]


def run_rules(
    rules: Sequence[Rule],
    payload: Mapping[str, Any],
    partial: bool = False,
) -> List[FieldError]:
    """
    Run every rule against the payload.

    Args:
        rules: Rules to evaluate, in reporting order
        payload: Parsed request body
        partial: Only check fields present in the payload

    Returns:
        All failures, in rule order; empty when the payload is valid
    """
    errors = []
    for rule in rules:
        if partial and rule.field not in payload:
            continue
        error = rule.run(payload)
        if error is not None:
            errors.append(error)
    return errors


async def read_json_body(request: Request) -> Dict[str, Any]:
    """Parse the request body; an empty or unparsable body counts as {}."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    if not isinstance(body, dict):
        raise RequestValidationFailed(
            errors=[{"field": "body", "message": "Request body must be a JSON object"}]
        )
    return body


def validate_body(rules: Sequence[Rule], partial: bool = False):
    """
    Build a dependency that validates the JSON body against ``rules``.

    The dependency returns the parsed body when it is valid and raises
    RequestValidationFailed with every failure otherwise.
    """
    async def dependency(request: Request) -> Dict[str, Any]:
        payload = await read_json_body(request)
        errors = run_rules(rules, payload, partial=partial)
        if errors:
            logger.info(
                "Request validation failed",
                path=request.url.path,
                fields=[error.field for error in errors]
            )
            raise RequestValidationFailed(errors=[error.model_dump() for error in errors])
        return payload

    return dependency


def json_body(model: Type[BaseModel]) -> Dict[str, Any]:
    """OpenAPI ``requestBody`` entry for a route whose body is read by validate_body."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema(by_alias=True)}},
        }
    }

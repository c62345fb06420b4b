"""
Parsing of commit specifications.

A commit specification is given either as separate fields (``--type``,
``--scope``, ``--description``, ``--body``) or as one comma-delimited
string ``"type,scope,description[,body]"``. The description may hold
several ``|``-separated descriptions, one per commit group.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from vc_workflow.errors import ConflictError, ValidationError, format_allowed

from .message_builder import COMMIT_TYPES, render_message


@dataclass(frozen=True)
class CommitSpec:
    """Validated metadata for one or more commits."""

    type: str
    scope: str
    descriptions: Tuple[str, ...]
    body: Optional[str] = None

    @property
    def is_wildcard(self) -> bool:
        return self.scope == "*"

    def description_for(self, position: int) -> str:
        """Description for the group at 0-based ``position``.

        Once the descriptions run out the last one is reused.
        """
        index = min(position, len(self.descriptions) - 1)
        return self.descriptions[index]

    def message_for(self, position: int) -> str:
        return render_message(self.type, self.scope, self.description_for(position), self.body)


def split_descriptions(raw: str) -> List[str]:
    """Split a ``|``-separated description, dropping empty entries."""
    return [part.strip() for part in raw.split("|") if part.strip()]


def _validate(
    commit_type: str,
    scope: str,
    descriptions: List[str],
    body: Optional[str],
    allowed_scopes: List[str],
) -> CommitSpec:
    if commit_type not in COMMIT_TYPES:
        raise ValidationError(
            f"Invalid type: '{commit_type}'. Valid values: {format_allowed(COMMIT_TYPES)}"
        )
    if scope not in allowed_scopes:
        raise ValidationError(
            f"Invalid scope: '{scope}'. Valid values: {format_allowed(allowed_scopes)}"
        )
    if not descriptions:
        raise ValidationError("Description must not be empty")
    return CommitSpec(type=commit_type, scope=scope, descriptions=tuple(descriptions), body=body or None)


def parse_spec_string(spec_string: str, allowed_scopes: Iterable[str]) -> CommitSpec:
    """Parse ``"type,scope,description[,body]"``.

    The string is split into at most four parts so the body may contain
    commas itself.

    Raises
    ------
    ValidationError
        If fewer than three parts are present or a value is not allowed.
    """
    parts = spec_string.split(",", 3)
    if len(parts) < 3:
        raise ValidationError(
            "Invalid format. Expected: 'type,scope,description[,body]'. "
            f"Received: '{spec_string}'"
        )
    commit_type = parts[0].strip()
    scope = parts[1].strip()
    descriptions = split_descriptions(parts[2])
    body = parts[3].strip() if len(parts) == 4 else None
    return _validate(commit_type, scope, descriptions, body, list(allowed_scopes))


def has_structured_fields(
    commit_type: Optional[str] = None,
    scope: Optional[str] = None,
    description: Optional[str] = None,
    body: Optional[str] = None,
) -> bool:
    return any(value is not None for value in (commit_type, scope, description, body))


def parse_commit_spec(
    allowed_scopes: Iterable[str],
    *,
    commit_type: Optional[str] = None,
    scope: Optional[str] = None,
    description: Optional[str] = None,
    body: Optional[str] = None,
    spec_string: Optional[str] = None,
) -> CommitSpec:
    """Build a :class:`CommitSpec` from exactly one of the two input forms.

    Raises
    ------
    ConflictError
        If both structured fields and ``spec_string`` are supplied.
    ValidationError
        If neither form is supplied, a required field is missing, or a
        value is not in its allowed set.
    """
    has_flags = has_structured_fields(commit_type, scope, description, body)
    has_positional = spec_string is not None

    if has_flags and has_positional:
        raise ConflictError(
            "Do not use both formats at once. Use either flags "
            "(--type, --scope, --description) or the positional format "
            "\"type,scope,description\"."
        )
    if not has_flags and not has_positional:
        raise ValidationError(
            "No commit specification given. Use --type, --scope, --description "
            "or the positional format \"type,scope,description\"."
        )

    if has_positional:
        return parse_spec_string(spec_string, allowed_scopes)

    if commit_type is None or scope is None or description is None:
        raise ValidationError(
            "When using flags, --type, --scope and --description are required "
            "(--body is optional)"
        )
    return _validate(
        commit_type.strip(),
        scope.strip(),
        split_descriptions(description),
        body.strip() if body else None,
        list(allowed_scopes),
    )

"""Completion policy and schema assembly."""

from dataclasses import replace

from .models import DiscoveredSchema, FieldKnowledge, FieldTestStatus, JsonObject


def is_complete(field_status: dict[str, FieldTestStatus]) -> bool:
    """Return True once at least one field has been discovered.

    Optionality and type coverage are not checked.
    """
    return len(field_status) > 0


def build_schema(
    known_fields: dict[str, FieldKnowledge],
    minimal_request_body: JsonObject | None = None,
) -> DiscoveredSchema:
    """Snapshot field knowledge into a schema sorted by field name."""
    fields = [replace(info) for _, info in sorted(known_fields.items())]
    return DiscoveredSchema(
        fields=fields,
        minimal_request_body=dict(minimal_request_body or {}),
    )


def incomplete_fields_message(field_status: dict[str, FieldTestStatus]) -> str:
    incomplete = [
        f"{name} (not discovered)"
        for name, status in sorted(field_status.items())
        if not status.discovered
    ]
    return (
        "Cannot complete yet. Some fields still need testing. "
        f"Fields still being discovered: [{', '.join(incomplete)}]"
    )


def field_status_message(
    known_fields: dict[str, FieldKnowledge],
    field_status: dict[str, FieldTestStatus],
) -> str:
    """Summarize known fields for the reasoning engine."""
    entries = []
    for name, info in sorted(known_fields.items()):
        status = field_status.get(name)
        if status is None:
            continue
        entries.append(f"{name} (type: {info.type or 'unknown'}, required: {str(status.required).lower()})")
    return "Current field status:\n[" + ", ".join(entries) + "]"

"""Schemas for number generation requests and generated draws."""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validate, validates_schema

from lotogen.services.game_catalog import GAME_TYPES


def normalize_game_type(data):  # type: ignore[no-untyped-def]
    """Lower-case and strip ``game_type`` the way the catalog lookup does."""

    if not hasattr(data, "get"):
        return data
    value = data.get("game_type")
    if not isinstance(value, str):
        return data
    plain = data.to_dict() if hasattr(data, "to_dict") else dict(data)
    plain["game_type"] = value.lower().strip()
    return plain


class GenerateRequestSchema(Schema):
    game_type = fields.String(required=True, validate=validate.OneOf(GAME_TYPES))

    # Upper bound comes from MAX_QUANTITY / DEMO_MAX_QUANTITY, checked by the service.
    quantity = fields.Integer(
        required=False,
        load_default=1,
        validate=validate.Range(min=1),
    )

    include_mas = fields.Boolean(required=False, load_default=False)
    generate_mas_only = fields.Boolean(required=False, load_default=False)

    @pre_load
    def _normalize(self, data, **kwargs):  # type: ignore[no-untyped-def]
        return normalize_game_type(data)

    @validates_schema
    def _validate_mas_flags(self, data, **kwargs):  # type: ignore[no-untyped-def]
        if data.get("include_mas") and data.get("generate_mas_only"):
            raise ValidationError({"generate_mas_only": ["Cannot be combined with include_mas"]})


class DrawSchema(Schema):
    """A generated combination that has not been saved."""

    game_type = fields.String()
    numbers = fields.List(fields.Integer(), attribute="main_numbers")
    mas = fields.Integer(attribute="secondary_number", allow_none=True)

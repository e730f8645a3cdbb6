"""Schemas for saved numbers and their listings."""

from __future__ import annotations

from marshmallow import Schema, fields, pre_load, validate

from lotogen.schemas.draw import normalize_game_type
from lotogen.services.game_catalog import GAME_TYPES
from lotogen.services.record_service import MAX_PAGE_SIZE


class DrawRecordSchema(Schema):
    id = fields.String()
    owner_id = fields.String()
    game_type = fields.String()
    numbers = fields.List(fields.Integer(), attribute="main_numbers")
    mas = fields.Integer(attribute="secondary_number", allow_none=True)
    generated_at = fields.DateTime()
    is_deleted = fields.Boolean()
    deleted_at = fields.DateTime(allow_none=True)


class PaginationSchema(Schema):
    total = fields.Integer()
    limit = fields.Integer()
    offset = fields.Integer()
    total_pages = fields.Integer()
    current_page = fields.Integer()


class ListDrawsQuerySchema(Schema):
    game_type = fields.String(required=False, load_default=None, validate=validate.OneOf(GAME_TYPES))
    limit = fields.Integer(required=False, load_default=10, validate=validate.Range(min=1, max=MAX_PAGE_SIZE))
    offset = fields.Integer(required=False, load_default=0, validate=validate.Range(min=0))

    @pre_load
    def _normalize(self, data, **kwargs):  # type: ignore[no-untyped-def]
        return normalize_game_type(data)


class AdminListDrawsQuerySchema(ListDrawsQuerySchema):
    owner_id = fields.String(required=False, load_default=None)
    include_deleted = fields.Boolean(required=False, load_default=False)


class OwnerSummarySchema(Schema):
    owner_id = fields.String()
    total_numbers = fields.Integer()
    deleted_numbers = fields.Integer()


class PageQuerySchema(Schema):
    limit = fields.Integer(required=False, load_default=10, validate=validate.Range(min=1, max=MAX_PAGE_SIZE))
    offset = fields.Integer(required=False, load_default=0, validate=validate.Range(min=0))


def dump_page(page, item_schema: Schema) -> dict:  # type: ignore[no-untyped-def]
    return {
        "items": item_schema.dump(page.items, many=True),
        "pagination": PaginationSchema().dump(page),
    }

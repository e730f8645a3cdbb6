"""Schemas for statistics responses."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from lotogen.services.statistics_service import MAX_HOT_COLD_LIMIT


class HotColdQuerySchema(Schema):
    limit = fields.Integer(required=False, load_default=5, validate=validate.Range(min=1, max=MAX_HOT_COLD_LIMIT))
    mas = fields.Boolean(required=False, load_default=False)


class FrequencyQuerySchema(Schema):
    mas = fields.Boolean(required=False, load_default=False)


class NumberStatisticSchema(Schema):
    number = fields.Integer()
    scope = fields.String()
    frequency = fields.Integer()
    last_appearance = fields.DateTime(allow_none=True)


class HotColdSchema(Schema):
    scope = fields.String()
    hot = fields.List(fields.Nested(NumberStatisticSchema))
    cold = fields.List(fields.Nested(NumberStatisticSchema))


class NumberFrequencySchema(Schema):
    number = fields.Integer()
    frequency = fields.Integer()
    percentage = fields.Float()
    last_appearance = fields.DateTime(allow_none=True)


class FrequencyAnalysisSchema(Schema):
    scope = fields.String()
    total_appearances = fields.Integer()
    numbers = fields.List(fields.Nested(NumberFrequencySchema))
    min_count = fields.Integer()
    max_count = fields.Integer()


class NumberCountSchema(Schema):
    number = fields.Integer()
    count = fields.Integer()


class UserStatsSchema(Schema):
    owner_id = fields.String()
    total_generations = fields.Integer()
    per_game_counts = fields.Dict(keys=fields.String(), values=fields.Integer())
    most_recent_activity_bucket = fields.String()
    last_generated_at = fields.DateTime(allow_none=True)
    favorite_numbers = fields.List(fields.Nested(NumberCountSchema))
    most_used_game_type = fields.String(allow_none=True)


class GameSchema(Schema):
    name = fields.String()
    label = fields.String()
    description = fields.String()
    domain_min = fields.Integer()
    domain_max = fields.Integer()
    draw_size = fields.Integer()
    has_secondary = fields.Boolean()
    secondary_min = fields.Integer(allow_none=True)
    secondary_max = fields.Integer(allow_none=True)

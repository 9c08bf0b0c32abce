"""Column helpers shared by the models."""

from sqlalchemy import Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON

from ..core.time_utils import now_utc

JSONType = JSONB(astext_type=Text()).with_variant(JSON(), "sqlite")

__all__ = ["JSONType", "now_utc"]

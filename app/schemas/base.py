"""
Base Pydantic schemas with common fields.

Records are stored with the camelCase keys of the persisted document, so
API schemas accept both the camelCase alias and the python field name.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class CamelModel(BaseModel):
    """Base for request/response bodies that mirror persisted camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)


Record = Dict[str, Any]

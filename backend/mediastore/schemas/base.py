"""Base schema classes with camelCase alias generation.

Schemas inherit from these instead of BaseModel directly. Python code stays
snake_case; JSON handed to callers becomes camelCase.
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for input schemas. Accepts snake_case or camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class CamelORMModel(BaseModel):
    """Base for output schemas. Reads from SQLAlchemy rows, dumps camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }

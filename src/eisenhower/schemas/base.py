"""Shared pydantic configuration for the JSON API.

Learn: Python attributes are snake_case, the wire format is camelCase
(isAdmin, coordX, topicId ...). The alias generator maps between them;
populate_by_name lets tests and internal callers use either spelling.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

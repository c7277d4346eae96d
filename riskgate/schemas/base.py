"""
Wire Model Base

Models exchanged over HTTP use camelCase names on the wire
(identityKey, compositeScore, ...) and snake_case attributes in Python.
Both spellings are accepted on input; stored JSON uses attribute names.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for request/response models."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

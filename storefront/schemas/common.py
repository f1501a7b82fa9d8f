"""
Common Pydantic schemas for API request/response handling.

The storefront client speaks camelCase JSON; models declare snake_case
fields and expose camelCase aliases. Both spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(CamelModel):
    """
    Schema for responses carrying only a user-facing message.

    Attributes:
        message: Localized (pt-BR) message
    """

    message: str = Field(description="User-facing message")

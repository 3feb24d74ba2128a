"""
Shared base model and the small summaries embedded in other responses.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every request and response model.

    Fields are declared in snake_case and exposed in camelCase
    (``provider_id`` ↔ ``providerId``).  Input accepts either form.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class UserSummary(ApiModel):
    id: int
    name: str
    email: str


class ProviderSummary(ApiModel):
    id: int
    name: str


class ServiceSummary(ApiModel):
    id: int
    title: str
    description: Optional[str] = None

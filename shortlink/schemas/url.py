from pydantic import BaseModel, HttpUrl, Field, computed_field, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from shortlink.config import settings


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class URLCreate(CamelModel):
    long_url: HttpUrl = Field(..., description="The original URL to be shortened")


class URLCreated(CamelModel):
    """Response of the create endpoint: {"shortUrl": ..., "shortCode": ...}"""
    short_code: str

    @computed_field(alias="shortUrl")
    @property
    def short_url(self) -> str:
        return f"{settings.base_url}/{self.short_code}"


class URLListItem(CamelModel):
    """One row of the caller's URL listing"""
    short_code: str
    long_url: str
    created_at: datetime

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, computed_field
from pydantic.alias_generators import to_camel

from linkstats_app.config import settings
from linkstats_app.models.url import Topic


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, still constructible by field name"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShortenRequest(CamelModel):
    long_url: HttpUrl = Field(..., description="The original URL to be shortened")
    custom_alias: Optional[str] = Field(None, description="Caller-chosen alias; generated when omitted")
    topic: Topic = Field(Topic.ACQUISITION, description="Reporting topic for the link")


class ShortenResponse(CamelModel):
    """Serializes a freshly created UrlMapping"""

    alias: str
    created_at: datetime

    @computed_field(alias="shortUrl")
    @property
    def short_url(self) -> str:
        return f"{settings.base_url}/{self.alias}"

    model_config = ConfigDict(from_attributes=True)

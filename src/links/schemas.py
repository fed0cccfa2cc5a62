import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, HttpUrl
from pydantic.alias_generators import to_camel

from links.models import MAX_URL_LENGTH


def check_url_length(url: HttpUrl) -> HttpUrl:
    if len(str(url)) > MAX_URL_LENGTH:
        raise ValueError(f"URL must be at most {MAX_URL_LENGTH} characters")
    return url


TargetUrl = Annotated[HttpUrl, AfterValidator(check_url_length)]


class CamelModel(BaseModel):
    """Serialized as camelCase on the wire; snake_case is accepted on input too."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class LinkCreate(CamelModel):
    original_url: TargetUrl
    custom_alias: Optional[str] = None
    expires_at: Optional[datetime] = None


class LinkUpdate(CamelModel):
    original_url: Optional[TargetUrl] = None
    expires_at: Optional[datetime] = None
    is_active: Optional[bool] = None


class LinkCreated(CamelModel):
    short_code: str
    original_url: str
    short_url: str
    custom_alias: Optional[str] = None


class LinkCreatedResponse(CamelModel):
    success: bool = True
    data: LinkCreated


class LinkRead(CamelModel):
    id: uuid.UUID
    short_code: str
    custom_alias: Optional[str] = None
    original_url: str
    owner_id: uuid.UUID
    clicks: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    is_active: bool


class LinkResponse(CamelModel):
    success: bool = True
    data: LinkRead


class LinkListResponse(CamelModel):
    success: bool = True
    data: list[LinkRead]

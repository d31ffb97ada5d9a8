import json
from datetime import datetime
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from churchflow.schemas.common import not_blank


# Block content. Extra keys are kept so editors can store more than the defaults.
class _Content(BaseModel):
    model_config = ConfigDict(extra="allow")


class HeroContent(_Content):
    title: str = "Welcome to Our Church"
    subtitle: str = "Join us for worship"
    buttonText: str = "Learn More"
    buttonLink: str = "#"
    backgroundImage: str = ""


class HeadingContent(_Content):
    text: str = "Section Title"
    level: Literal["h1", "h2", "h3", "h4"] = "h2"


class TextContent(_Content):
    html: str = "<p>Enter your content here...</p>"


class ImageContent(_Content):
    url: str = ""
    alt: str = ""
    caption: str = ""


class VideoContent(_Content):
    url: str = ""
    autoplay: bool = False


class EventsContent(_Content):
    limit: int = 3
    showPast: bool = False


class DonationContent(_Content):
    title: str = "Support Our Ministry"
    buttonText: str = "Give Now"
    fundId: str = ""


class StaffContent(_Content):
    showAll: bool = True
    limit: int = 6


class MapContent(_Content):
    address: str = ""
    zoom: int = 15


class ColumnsContent(_Content):
    columns: int = 2
    content: list[list] = [[], []]


class HeroBlock(BaseModel):
    id: str
    type: Literal["hero"]
    content: HeroContent = HeroContent()


class HeadingBlock(BaseModel):
    id: str
    type: Literal["heading"]
    content: HeadingContent = HeadingContent()


class TextBlock(BaseModel):
    id: str
    type: Literal["text"]
    content: TextContent = TextContent()


class ImageBlock(BaseModel):
    id: str
    type: Literal["image"]
    content: ImageContent = ImageContent()


class VideoBlock(BaseModel):
    id: str
    type: Literal["video"]
    content: VideoContent = VideoContent()


class EventsBlock(BaseModel):
    id: str
    type: Literal["events"]
    content: EventsContent = EventsContent()


class DonationBlock(BaseModel):
    id: str
    type: Literal["donation"]
    content: DonationContent = DonationContent()


class StaffBlock(BaseModel):
    id: str
    type: Literal["staff"]
    content: StaffContent = StaffContent()


class MapBlock(BaseModel):
    id: str
    type: Literal["map"]
    content: MapContent = MapContent()


class ColumnsBlock(BaseModel):
    id: str
    type: Literal["columns"]
    content: ColumnsContent = ColumnsContent()


ContentBlock = Annotated[
    Union[
        HeroBlock,
        HeadingBlock,
        TextBlock,
        ImageBlock,
        VideoBlock,
        EventsBlock,
        DonationBlock,
        StaffBlock,
        MapBlock,
        ColumnsBlock,
    ],
    Field(discriminator="type"),
]


# Request Schemas
class PageCreateRequest(BaseModel):
    title: str
    slug: str
    template: str = "content"
    content: list[ContentBlock] = []
    meta_title: str | None = None
    meta_description: str | None = None
    is_home_page: bool = False
    is_published: bool = False
    show_in_nav: bool = True

    @field_validator("title", "slug")
    def required_text(cls, v: str) -> str:
        return not_blank(v)


class PageUpdateRequest(BaseModel):
    title: str | None = None
    slug: str | None = None
    template: str | None = None
    content: list[ContentBlock] | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    is_home_page: bool | None = None
    is_published: bool | None = None
    show_in_nav: bool | None = None
    order: int | None = None


class MediaCreateRequest(BaseModel):
    filename: str
    url: str
    mime_type: str = "application/octet-stream"
    size: int = 0
    alt_text: str | None = None

    @field_validator("filename", "url")
    def required_text(cls, v: str) -> str:
        return not_blank(v)


# Response Schemas
class PageSummarySchema(BaseModel):
    id: int
    title: str
    slug: str
    template: str
    is_home_page: bool
    is_published: bool
    show_in_nav: bool
    order: int
    updated_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class PageSchema(PageSummarySchema):
    content: list[ContentBlock] = []
    meta_title: str | None = None
    meta_description: str | None = None
    created_at: datetime

    @field_validator("content", mode="before")
    def parse_content(cls, v):
        # Stored as JSON text on the model
        if isinstance(v, str):
            return json.loads(v) if v else []
        return v


class MediaSchema(BaseModel):
    id: int
    filename: str
    url: str
    mime_type: str
    size: int
    alt_text: str | None = None
    uploaded_by: int | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MediaListResponse(BaseModel):
    items: list[MediaSchema]
    storage_used: int
    storage_limit: int

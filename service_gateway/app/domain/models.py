"""
Catalog data models for the Gateway.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class Principal(BaseModel):
    """An upstream user that identity-scoped queries run as."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="Id")
    name: Optional[str] = Field(default=None, alias="Name")


class CatalogItem(BaseModel):
    """A movie, series or episode record as the upstream reports it."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    id: str = Field(alias="Id")
    name: str = Field(default="", alias="Name")
    type: str = Field(default="", alias="Type")
    community_rating: Optional[float] = Field(default=None, alias="CommunityRating")
    production_year: Optional[int] = Field(default=None, alias="ProductionYear")
    overview: Optional[str] = Field(default=None, alias="Overview")
    genres: List[str] = Field(default_factory=list, alias="Genres")


@dataclass
class CatalogQuery:
    """Client filter, sort and paging intent for an item listing."""

    include_types: Optional[Sequence[str]] = None
    limit: Optional[Any] = None
    start_index: Optional[Any] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    recursive: Optional[Any] = None
    fields: Optional[Sequence[str]] = None
    parent_id: Optional[str] = None
    search_term: Optional[str] = None
    genre_id: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        """Public-vocabulary parameter mapping, ready for normalization."""
        return {
            "includeTypes": self.include_types,
            "limit": self.limit,
            "startIndex": self.start_index,
            "sortBy": self.sort_by,
            "sortOrder": self.sort_order,
            "recursive": self.recursive,
            "fields": self.fields,
            "parentId": self.parent_id,
            "query": self.search_term,
            "genreId": self.genre_id,
        }


@dataclass(frozen=True)
class TranscodeParams:
    """Transcoding parameters embedded in a stream URL."""

    container: str = "mp4"
    video_codec: str = "h264"
    audio_codec: str = "aac"
    max_width: int = 1920
    max_height: int = 1080
    video_bitrate: int = 8000000
    audio_bitrate: int = 128000


@dataclass(frozen=True)
class StreamGrant:
    """A built deep link to upstream video bytes."""

    item_id: str
    params: TranscodeParams
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"streamUrl": self.url}


@dataclass
class RateWindow:
    """Request counter for one client address."""

    window_start: float
    count: int = 0

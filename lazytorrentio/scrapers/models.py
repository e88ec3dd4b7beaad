from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ParsedIdentifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_id: str  # e.g. "tt1234567"
    season: Optional[int] = None
    episode: Optional[int] = None


class ScraperQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    parsed: ParsedIdentifier
    mirrors: List[str]


class Stream(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    title: str
    url: str  # magnet URI or .torrent download URL
    seeders: Optional[int] = None
    description: Optional[str] = None
    behaviorHints: Optional[dict] = None

    def to_payload(self):
        return self.model_dump(exclude_none=True)


class TitleBasics(BaseModel):
    primary_title: Optional[str] = None
    original_title: Optional[str] = None
    title_type: Optional[str] = None

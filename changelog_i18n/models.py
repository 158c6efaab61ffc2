"""
Changelog data model.

Entries travel as JSON between the content source, the sync cache and the web
layer. The wire format uses the front end's camelCase keys (htmlContent, rawHtml);
the dataclasses use Python names.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass
class MediaItem:
    """Image or video attached to an entry."""
    src: str
    type: str = "image"  # image|video
    alt: Optional[str] = None
    caption: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_type: str = "image") -> "MediaItem":
        return cls(
            src=data.get("src", ""),
            type=data.get("type") or default_type,
            alt=data.get("alt"),
            caption=data.get("caption"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"src": self.src, "type": self.type}
        if self.alt is not None:
            payload["alt"] = self.alt
        if self.caption is not None:
            payload["caption"] = self.caption
        return payload


@dataclass
class Section:
    """Heading-delimited part of an entry. level: h1=1, h2=2, ..."""
    title: str
    content: str = ""
    level: int = 2

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        return cls(
            title=data.get("title", ""),
            content=data.get("content", ""),
            level=int(data.get("level", 2)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "content": self.content, "level": self.level}


@dataclass
class ChangelogEntry:
    """One changelog release. Entries are the same iff their ids match."""
    id: str
    version: str
    date: str
    title: str
    content: str = ""
    html_content: str = ""
    images: List[MediaItem] = field(default_factory=list)
    videos: List[MediaItem] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)
    raw_html: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangelogEntry":
        return cls(
            id=str(data["id"]),
            version=str(data.get("version", "")),
            date=str(data.get("date", "")),
            title=data.get("title", ""),
            content=data.get("content", ""),
            html_content=data.get("htmlContent", data.get("html_content", "")),
            images=[MediaItem.from_dict(item, "image") for item in data.get("images", [])],
            videos=[MediaItem.from_dict(item, "video") for item in data.get("videos", [])],
            sections=[Section.from_dict(item) for item in data.get("sections", [])],
            raw_html=data.get("rawHtml", data.get("raw_html", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "date": self.date,
            "title": self.title,
            "content": self.content,
            "htmlContent": self.html_content,
            "images": [item.to_dict() for item in self.images],
            "videos": [item.to_dict() for item in self.videos],
            "sections": [section.to_dict() for section in self.sections],
            "rawHtml": self.raw_html,
        }

    def copy_with(self, **changes) -> "ChangelogEntry":
        return replace(self, **changes)


def entries_from_json(items: List[Dict[str, Any]]) -> List[ChangelogEntry]:
    return [ChangelogEntry.from_dict(item) for item in items]


def entries_to_json(entries: List[ChangelogEntry]) -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in entries]

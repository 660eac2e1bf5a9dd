from dataclasses import dataclass
from typing import Any


def parse_dimension(value: Any) -> int | None:
    """Coerce a width/height attribute to a positive int, or None when unmeasured."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(str(value).strip())
    except ValueError:
        return None
    return number if number > 0 else None


@dataclass(frozen=True)
class RawImage:
    url: str
    alt: str = ""
    title: str = ""
    width: int | None = None       # None = not measured
    height: int | None = None
    caption: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawImage":
        return cls(
            url=str(data.get("url") or ""),
            alt=str(data.get("alt") or ""),
            title=str(data.get("title") or ""),
            width=parse_dimension(data.get("width")),
            height=parse_dimension(data.get("height")),
            caption=str(data.get("caption") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "alt": self.alt,
            "title": self.title,
            "width": self.width,
            "height": self.height,
            "caption": self.caption,
        }

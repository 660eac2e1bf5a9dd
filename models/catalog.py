from dataclasses import dataclass, field

from .image import RawImage


@dataclass
class CatalogItem:
    id: int
    title: str
    images: list[RawImage] = field(default_factory=list)

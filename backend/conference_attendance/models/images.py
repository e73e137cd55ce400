from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class InlineImage:
    """Image bytes held in memory (e.g. read from the capture device's disk)"""

    data: bytes

    def __repr__(self):
        return f"InlineImage({len(self.data)} bytes)"


@dataclass(frozen=True)
class StorageImage:
    """Image held in blob storage"""

    bucket: str
    key: str


Image = Union[InlineImage, StorageImage]

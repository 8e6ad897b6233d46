from __future__ import annotations
from dataclasses import dataclass
from io import BytesIO

from PIL import Image


@dataclass(frozen=True)
class SignatureImage:
    """
    Cropped, transparent-background PNG captured once per signing session.
    Reused for every box of that session and never stored on its own.
    """
    png: bytes
    width: int
    height: int

    @classmethod
    def from_pil(cls, img: Image.Image) -> "SignatureImage":
        rgba = img.convert("RGBA")
        buf = BytesIO()
        rgba.save(buf, format="PNG")
        return cls(png=buf.getvalue(), width=rgba.width, height=rgba.height)

    def to_pil(self) -> Image.Image:
        return Image.open(BytesIO(self.png)).convert("RGBA")

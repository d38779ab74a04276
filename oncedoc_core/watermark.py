# oncedoc_core/watermark.py
from __future__ import annotations
from .errors import WatermarkError
from .logger import get_logger
from .models import ViewerContext
from .utils import to_iso

log = get_logger("OnceDoc.Watermark")


class WatermarkStage:
    """Transforms decrypted bytes plus viewer metadata into the bytes shown or printed."""
    name: str = "base"

    def apply(self, plaintext: bytes, mime_type: str, viewer: ViewerContext) -> bytes:
        raise NotImplementedError


class PassthroughWatermark(WatermarkStage):
    """Pipeline placeholder: returns content unchanged."""
    name = "passthrough"

    def apply(self, plaintext: bytes, mime_type: str, viewer: ViewerContext) -> bytes:
        log.debug(f"[WATERMARK] passthrough mime={mime_type} browser={viewer.browser}")
        return plaintext


class TextStampWatermark(WatermarkStage):
    """
    Appends a visible viewer stamp to text documents.

    Non-text content is refused with WatermarkError when `strict` is set,
    otherwise returned unchanged.
    """
    name = "text-stamp"

    def __init__(self, strict: bool = True, encoding: str = "utf-8"):
        self.strict = strict
        self.encoding = encoding

    def stamp(self, viewer: ViewerContext) -> str:
        return f"\n\n-- viewed once by {viewer.browser} from {viewer.ip} at {to_iso(viewer.time)} --\n"

    def apply(self, plaintext: bytes, mime_type: str, viewer: ViewerContext) -> bytes:
        if not (mime_type or "").startswith("text/"):
            if self.strict:
                raise WatermarkError(f"cannot watermark {mime_type or 'unknown type'}")
            return plaintext
        try:
            text = plaintext.decode(self.encoding)
        except UnicodeDecodeError as e:
            raise WatermarkError(f"content is not valid {self.encoding}") from e
        return (text + self.stamp(viewer)).encode(self.encoding)

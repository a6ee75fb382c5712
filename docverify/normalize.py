import hashlib
import re
import unicodedata
from typing import Any

# Separators OCR output tends to sprinkle inside identifiers ("AB-12", "27/AB 12").
_ID_STRIP = re.compile(r"[\s\-/.]+")


def normalize_text(s: Any) -> str:
    if s is None:
        return ""
    return " ".join(str(s).strip().lower().split())


def normalize_identifier(raw: Any) -> str:
    if raw is None:
        return ""
    return _ID_STRIP.sub("", str(raw)).upper()


def normalize_name(raw: Any) -> str:
    if raw is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(raw))
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return normalize_text(folded)


def digest(normalized_identifier: str) -> str:
    return hashlib.sha256(str(normalized_identifier).encode("utf-8")).hexdigest()


def identifier_digest(raw: Any) -> str:
    """Digest of the normalized form of a raw identifier ('' stays unhashed)."""
    normalized = normalize_identifier(raw)
    return digest(normalized) if normalized else ""


def mask_identifier(raw: Any, visible: int = 4, mask_char: str = "X") -> str:
    normalized = normalize_identifier(raw)
    if not normalized:
        return ""
    if len(normalized) <= visible:
        return normalized
    return mask_char * (len(normalized) - visible) + normalized[-visible:]

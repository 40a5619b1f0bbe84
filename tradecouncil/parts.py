"""Conversion between prompt Parts and each provider's native content shape."""

import base64
import json
import mimetypes
import re
from pathlib import Path
from typing import Any

from google.genai import types as genai_types

from tradecouncil.models import InlineDataPart, Part, TextPart

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]+);base64,(?P<data>.*)$", re.DOTALL)


def part_from_dict(raw: dict[str, Any]) -> Part | None:
    """Parse the camelCase wire shape. Returns None for unrecognised entries."""
    if raw.get("text") is not None:
        return TextPart(text=str(raw["text"]))
    inline = raw.get("inlineData")
    if inline:
        return InlineDataPart(mime_type=str(inline["mimeType"]), data=str(inline["data"]))
    return None


def load_parts_file(path: Path) -> list[Part]:
    """Read a JSON array of camelCase parts, as saved by a chart capture tool.

    Raises:
        ValueError: If the file is not a JSON array.
    """
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"Expected a JSON array of parts in {path}")
    parts = [part_from_dict(entry) for entry in raw if isinstance(entry, dict)]
    return [p for p in parts if p is not None]


def image_part(path: Path) -> InlineDataPart:
    """Load an image file as an inline base64 part."""
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise ValueError(f"Not an image file: {path}")
    data = base64.b64encode(path.read_bytes()).decode("ascii")
    return InlineDataPart(mime_type=mime_type, data=data)


def parts_to_openai(parts: list[Part]) -> list[dict[str, Any]]:
    """Map Parts to chat-completions content entries (text / image_url data-URL)."""
    content: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, TextPart):
            if part.text:
                content.append({"type": "text", "text": part.text})
        elif isinstance(part, InlineDataPart):
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{part.mime_type};base64,{part.data}"},
            })
    return content


def openai_to_parts(content: list[dict[str, Any]]) -> list[Part]:
    """Inverse of parts_to_openai.

    Raises:
        ValueError: If an image_url entry is not a base64 data URL.
    """
    parts: list[Part] = []
    for entry in content:
        kind = entry.get("type")
        if kind == "text":
            parts.append(TextPart(text=entry.get("text", "")))
        elif kind == "image_url":
            url = entry["image_url"]["url"]
            match = _DATA_URL_RE.match(url)
            if not match:
                raise ValueError(f"Expected a base64 data URL, got: {url[:40]}")
            parts.append(InlineDataPart(mime_type=match["mime"], data=match["data"]))
    return parts


def parts_to_gemini(parts: list[Part]) -> list[genai_types.Part]:
    """Map Parts to google-genai Parts. Inline payloads are decoded to raw bytes.

    Raises:
        binascii.Error: If an inline payload is not strict base64.
    """
    native: list[genai_types.Part] = []
    for part in parts:
        if isinstance(part, TextPart):
            if part.text:
                native.append(genai_types.Part(text=part.text))
        elif isinstance(part, InlineDataPart):
            native.append(
                genai_types.Part(
                    inline_data=genai_types.Blob(
                        mime_type=part.mime_type,
                        data=base64.b64decode(part.data, validate=True),
                    )
                )
            )
    return native


def gemini_to_parts(native: list[genai_types.Part]) -> list[Part]:
    parts: list[Part] = []
    for item in native:
        if item.text is not None:
            parts.append(TextPart(text=item.text))
        elif item.inline_data is not None and item.inline_data.data is not None:
            parts.append(
                InlineDataPart(
                    mime_type=item.inline_data.mime_type or "application/octet-stream",
                    data=base64.b64encode(item.inline_data.data).decode("ascii"),
                )
            )
    return parts


def as_parts(prompt: str | list[Part]) -> list[Part]:
    """Normalise a plain-text prompt to a single-part list."""
    if isinstance(prompt, str):
        return [TextPart(text=prompt)]
    return list(prompt)

"""Strategy files: markdown trading rules with optional YAML frontmatter."""

from dataclasses import dataclass
from pathlib import Path

import frontmatter


@dataclass
class Strategy:
    name: str
    rules: str                    # used verbatim as the system instruction
    provider: str | None = None   # "gemini", "openai", "groq", "council"
    model: str | None = None


def load_strategy(file_path: Path) -> Strategy:
    """Parse a strategy markdown file.

    Frontmatter keys ``name``, ``provider`` and ``model`` are optional; the
    name defaults to the file stem.

    Raises:
        ValueError: If the file body is empty.
    """
    post = frontmatter.load(str(file_path))
    rules = post.content.strip()
    if not rules:
        raise ValueError(f"Strategy file has no rules: {file_path}")
    meta = dict(post.metadata)
    return Strategy(
        name=str(meta.get("name") or file_path.stem),
        rules=rules,
        provider=str(meta["provider"]) if meta.get("provider") else None,
        model=str(meta["model"]) if meta.get("model") else None,
    )

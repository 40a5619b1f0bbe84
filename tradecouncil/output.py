"""Rich console output and markdown file save for analysis results."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from tradecouncil.synthesis import OPINION_SEPARATOR, split_transcript

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_OPINION_RE = re.compile(r"^--- OPINION FROM (?P<provider>.+?) ---$", re.MULTILINE)


@dataclass
class AnalysisReport:
    prompt: str
    strategy_name: str
    provider: str            # "council" or a single provider name
    text: str                # raw answer, transcript block included
    total_tokens: int
    duration_sec: float
    images: list[str] = field(default_factory=list)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len] or "analysis"


def parse_opinions(transcript: str) -> list[tuple[str, str]]:
    """Split a council transcript into (provider, opinion) pairs."""
    matches = list(_OPINION_RE.finditer(transcript))
    opinions: list[tuple[str, str]] = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(transcript)
        body = transcript[match.end():end].strip()
        body = body.removesuffix(OPINION_SEPARATOR).rstrip()
        opinions.append((match["provider"], body))
    return opinions


def print_opinions(transcript: str) -> None:
    """Print each council member's opinion as a dim panel."""
    console.print(Rule("[bold cyan]Council Opinions[/bold cyan]"))
    for provider, body in parse_opinions(transcript):
        console.print(Panel(Text(body), title=f"[bold]{provider}[/bold]", border_style="dim"))


def print_verdict(report: AnalysisReport) -> None:
    """Print the final answer with the transcript block stripped."""
    clean, transcript = split_transcript(report.text)
    if transcript:
        print_opinions(transcript)
    title = "Council Verdict" if report.provider == "council" else f"{report.provider.title()} Analysis"
    console.print(Rule(f"[bold green]{title}[/bold green]"))
    console.print(
        Text(
            f"Strategy: {report.strategy_name} | "
            f"Tokens: {report.total_tokens} | "
            f"Duration: {report.duration_sec:.1f}s",
            style="dim",
        )
    )
    console.print(Markdown(clean))


def save_to_file(report: AnalysisReport, output_dir: Path) -> Path:
    """Save the analysis as a markdown file.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{timestamp}_{_slug(report.strategy_name)}.md"

    clean, transcript = split_transcript(report.text)

    lines: list[str] = [
        f"# Trade Analysis: {report.strategy_name}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Provider:** {report.provider}",
        f"**Tokens:** {report.total_tokens}",
        f"**Duration:** {report.duration_sec:.1f}s",
    ]
    if report.images:
        lines.append(f"**Charts:** {', '.join(report.images)}")
    lines += [
        "",
        "---",
        "",
        "## Prompt",
        "",
        report.prompt,
        "",
        "## Verdict",
        "",
        clean,
        "",
    ]

    if transcript:
        lines += ["## Council Opinions", ""]
        for provider, body in parse_opinions(transcript):
            lines += [f"### {provider.title()}", "", body, ""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Analysis saved to: %s", filepath)
    return filepath

"""Judge synthesis: build transcript, call the judge, return FinalVerdict."""

import logging

from config.config_loader import PromptsConfig
from tradecouncil.models import FinalVerdict, ProviderResponse
from tradecouncil.providers.base import AIProvider, MissingCredentialError

logger = logging.getLogger(__name__)

TRANSCRIPT_START = "<<<COUNCIL_TRANSCRIPT_START>>>"
TRANSCRIPT_END = "<<<COUNCIL_TRANSCRIPT_END>>>"

OPINION_SEPARATOR = "-" * 48

# Groq is never asked to judge.
JUDGE_PRIORITY = ("openai", "gemini")


def format_transcript(responses: list[ProviderResponse]) -> str:
    """Concatenate each opinion between a provider header and a separator line."""
    blocks = [
        f"--- OPINION FROM {resp.provider.upper()} ---\n{resp.text}\n{OPINION_SEPARATOR}"
        for resp in responses
    ]
    return "\n\n".join(blocks)


def pick_judge(providers: dict[str, AIProvider]) -> AIProvider:
    """Return the judge: OpenAI when configured, otherwise Gemini.

    Raises:
        MissingCredentialError: If neither judge-capable provider is configured.
    """
    for name in JUDGE_PRIORITY:
        if name in providers:
            return providers[name]
    raise MissingCredentialError("judge", "Council judge needs an OpenAI or Gemini API key")


def build_synthesis_prompt(template: str, transcript: str) -> str:
    return template.format(transcript=transcript)


def attach_transcript(text: str, transcript: str) -> str:
    return f"{text}\n\n{TRANSCRIPT_START}\n{transcript}\n{TRANSCRIPT_END}"


def split_transcript(text: str) -> tuple[str, str | None]:
    """Separate a council answer from its appended transcript block.

    Returns:
        (clean_text, transcript). transcript is None when no block is present.
        Splits at the last start marker; judge text may quote the marker.
    """
    start = text.rfind(TRANSCRIPT_START)
    if start == -1:
        return text, None
    end = text.find(TRANSCRIPT_END, start)
    body_end = end if end != -1 else len(text)
    transcript = text[start + len(TRANSCRIPT_START):body_end].strip("\n")
    tail = text[end + len(TRANSCRIPT_END):] if end != -1 else ""
    clean = (text[:start] + tail).rstrip()
    return clean, transcript


async def synthesize(
    system_instruction: str,
    responses: list[ProviderResponse],
    judge: AIProvider,
    prompts: PromptsConfig,
) -> FinalVerdict:
    """Reconcile council opinions into one verdict.

    The judge receives the original system instruction unchanged, so its
    answer keeps the output format the strategy demands.

    Args:
        system_instruction: The strategy rules given to every council member.
        responses: Successful council opinions.
        judge: Provider that performs the reconciliation.
        prompts: Prompt templates from config.

    Returns:
        FinalVerdict with the transcript appended and tokens summed.

    Raises:
        ProviderError: If the judge call fails. There is no fallback judge.
    """
    transcript = format_transcript(responses)
    synthesis_prompt = build_synthesis_prompt(prompts.synthesis, transcript)

    logger.info("Running synthesis via %s over %d opinions", judge.name(), len(responses))

    judge_response = await judge.generate_content(system_instruction, synthesis_prompt)

    total_tokens = sum(r.token_count for r in responses) + judge_response.usage.total_token_count

    return FinalVerdict(
        text=attach_transcript(judge_response.text, transcript),
        transcript=transcript,
        total_tokens=total_tokens,
        judge=judge.name(),
    )

"""Pure dataclasses for the trade council pipeline. No deps."""

from dataclasses import dataclass, field
from typing import Literal


@dataclass
class TextPart:
    text: str


@dataclass
class InlineDataPart:
    mime_type: str         # "image/png", "image/jpeg", ...
    data: str              # base64 payload, no data-URL prefix


Part = TextPart | InlineDataPart


@dataclass
class ChatMessage:
    role: Literal["user", "assistant"]
    content: str | list[Part]


@dataclass
class Usage:
    total_token_count: int = 0


@dataclass
class StandardizedResponse:
    text: str
    usage: Usage = field(default_factory=Usage)


@dataclass
class ProviderResponse:
    provider: str          # "gemini", "openai", "groq"
    model: str             # actual model string used
    text: str
    token_count: int
    latency_sec: float = 0.0


@dataclass
class ProviderFailure:
    provider: str
    error: Exception


ProviderCallOutcome = ProviderResponse | ProviderFailure


@dataclass
class CouncilRound:
    outcomes: list[ProviderCallOutcome] = field(default_factory=list)

    @property
    def successes(self) -> list[ProviderResponse]:
        return [o for o in self.outcomes if isinstance(o, ProviderResponse)]

    @property
    def failures(self) -> list[ProviderFailure]:
        return [o for o in self.outcomes if isinstance(o, ProviderFailure)]


@dataclass
class FinalVerdict:
    text: str              # judge text with the transcript block appended
    transcript: str
    total_tokens: int
    judge: str


@dataclass
class ApiConfiguration:
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    groq_api_key: str | None = None
    use_default_credential_if_absent: bool = False
    default_gemini_api_key: str | None = None

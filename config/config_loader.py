"""Load settings.yaml into typed dataclasses and map API keys from the environment."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from tradecouncil.models import ApiConfiguration

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    chat_max_tokens: int
    base_url: str | None = None
    deprecated_models: list[str] = field(default_factory=list)


@dataclass
class PromptsConfig:
    synthesis: str
    health_check: str = "Reply with the word OK only."


@dataclass
class DefaultsConfig:
    preferred_provider: str
    output_dir: Path
    use_default_credential_if_absent: bool = False
    default_gemini_key_env: str | None = None


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        preferred_provider=str(defaults_raw["preferred_provider"]),
        output_dir=Path(defaults_raw["output_dir"]),
        use_default_credential_if_absent=bool(defaults_raw.get("use_default_credential_if_absent", False)),
        default_gemini_key_env=defaults_raw.get("default_gemini_key_env"),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(synthesis=prompts_raw["synthesis"])
    if "health_check" in prompts_raw:
        prompts.health_check = str(prompts_raw["health_check"])

    models: dict[str, ModelConfig] = {}
    for provider_name, model_raw in raw["models"].items():
        max_tokens = int(model_raw["max_tokens"])
        model_cfg = ModelConfig(
            name=provider_name,
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=max_tokens,
            chat_max_tokens=int(model_raw.get("chat_max_tokens", max_tokens)),
            base_url=model_raw.get("base_url"),
            deprecated_models=[str(m) for m in model_raw.get("deprecated_models", [])],
        )
        models[provider_name] = model_cfg

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
    )


def load_api_config(config: AppConfig) -> ApiConfiguration:
    """Build the caller-side ApiConfiguration from environment variables.

    Blank values count as absent. The default Gemini key is only read when
    the settings name an env var for it.
    """

    def _env(name: str | None) -> str | None:
        if not name:
            return None
        return os.environ.get(name, "").strip() or None

    def _key_for(provider: str) -> str | None:
        model_cfg = config.models.get(provider)
        if model_cfg is None:
            return None
        key = _env(model_cfg.api_key_env)
        if key is None:
            logger.info("Provider key not set: %s, set %s in .env", provider, model_cfg.api_key_env)
        return key

    return ApiConfiguration(
        gemini_api_key=_key_for("gemini"),
        openai_api_key=_key_for("openai"),
        groq_api_key=_key_for("groq"),
        use_default_credential_if_absent=config.defaults.use_default_credential_if_absent,
        default_gemini_api_key=_env(config.defaults.default_gemini_key_env),
    )

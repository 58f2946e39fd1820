from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_WELCOME_MESSAGE = (
    "Hello! I'm Prep Buddy, your AI assistant for anything related to placements at BITSoM. "
    "Ask me to help you prep for a company, find out who was selected where, "
    "or anything else about placements."
)


@dataclass
class RuntimeEnv:
    provider_api_key: str
    provider_env_var: str


@dataclass
class AppConfig:
    provider_name: str
    model: str
    max_tokens: int
    temperature: float
    storage_enabled: bool
    storage_path: str
    storage_key: str
    ai_name: str
    owner_name: str
    welcome_message: str
    prompt_variant: str
    max_message_chars: int
    persist_every_fragments: int
    log_level: str
    log_consumers: list | None


def load_json_config() -> dict:
    config_path = Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_bool(value: object, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return bool(value)


def parse_app_config(config: dict) -> AppConfig:
    return AppConfig(
        provider_name=config.get("Provider", "anthropic").strip().lower(),
        model=config.get("Model", "claude-sonnet-4-5-20250929"),
        max_tokens=int(config.get("MaxTokens", 4096)),
        temperature=float(config.get("Temperature", 1.0)),
        storage_enabled=_to_bool(config.get("StorageEnabled", True), default=True),
        storage_path=str(config.get("StoragePath", ".prep_buddy/storage.db")),
        storage_key=str(config.get("StorageKey", "chat-messages")).strip() or "chat-messages",
        ai_name=config.get("AiName", "Prep Buddy"),
        owner_name=config.get("OwnerName", "BITSoM"),
        welcome_message=config.get("WelcomeMessage", DEFAULT_WELCOME_MESSAGE),
        prompt_variant=str(config.get("PromptVariant", "default")).strip().lower(),
        max_message_chars=int(config.get("MaxMessageChars", 2000)),
        persist_every_fragments=int(config.get("PersistEveryFragments", 20)),
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env(provider_name: str) -> RuntimeEnv:
    if provider_name == "openai":
        provider_env_var = "OPENAI_API_KEY"
    else:
        provider_env_var = "ANTHROPIC_API_KEY"

    return RuntimeEnv(
        provider_api_key=os.environ.get(provider_env_var, ""),
        provider_env_var=provider_env_var,
    )

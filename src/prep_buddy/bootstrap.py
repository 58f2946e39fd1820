from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from prep_buddy.app_config import AppConfig, RuntimeEnv
from prep_buddy.logging_config import setup_logging
from prep_buddy.memory import KeyValueStore, SessionStatus, SessionStore, StorageBridge, WelcomeBootstrapper
from prep_buddy.provider import CompletionClient, create_provider
from prep_buddy.system_prompt import build_system_prompt


@dataclass
class AppRuntime:
    session: SessionStore
    bootstrapper: WelcomeBootstrapper
    key_value_store: KeyValueStore | None
    log_descriptions: list[str]

    def close(self) -> None:
        if self.key_value_store is not None:
            self.key_value_store.close()


def open_key_value_store(app: AppConfig) -> KeyValueStore | None:
    """Capability check: return the durable store, or None when it cannot be used."""
    if not app.storage_enabled:
        logger.info("Storage disabled by configuration; conversation will not be persisted")
        return None

    db_path = Path(app.storage_path)
    if not db_path.is_absolute():
        db_path = Path.cwd() / db_path
    try:
        return KeyValueStore(str(db_path))
    except (sqlite3.Error, OSError) as ex:
        logger.warning(f"Storage unavailable at {db_path}: {ex}")
        return None


def bootstrap_runtime(
    app: AppConfig,
    env: RuntimeEnv,
    *,
    client: CompletionClient | None = None,
    on_fragment: Callable[[str], None] | None = None,
    on_status_change: Callable[[SessionStatus], None] | None = None,
) -> AppRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    if client is None:
        client = create_provider(
            app.provider_name,
            env.provider_api_key,
            model=app.model,
            max_tokens=app.max_tokens,
            temperature=app.temperature,
        )

    # Fail on a bad variant at startup rather than on the first send.
    build_system_prompt(app.ai_name, app.owner_name, variant=app.prompt_variant)

    key_value_store = open_key_value_store(app)
    session = SessionStore(
        StorageBridge(key_value_store, app.storage_key),
        client,
        system_prompt_factory=lambda: build_system_prompt(
            app.ai_name, app.owner_name, variant=app.prompt_variant
        ),
        welcome_text=app.welcome_message,
        max_message_chars=app.max_message_chars,
        persist_every_fragments=app.persist_every_fragments,
        on_fragment=on_fragment,
        on_status_change=on_status_change,
    )
    bootstrapper = WelcomeBootstrapper(session)
    bootstrapper.run()

    return AppRuntime(
        session=session,
        bootstrapper=bootstrapper,
        key_value_store=key_value_store,
        log_descriptions=log_descriptions,
    )

import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from prep_buddy.app_config import load_json_config, parse_app_config, resolve_runtime_env
from prep_buddy.bootstrap import bootstrap_runtime
from prep_buddy.chat_app import ChatApp


def _print_fragment(fragment: str) -> None:
    print(fragment, end="", flush=True)


async def main() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config())
    env = resolve_runtime_env(app.provider_name)
    if not env.provider_api_key:
        logger.error(f"{env.provider_env_var} environment variable is required.")
        sys.exit(1)

    runtime = bootstrap_runtime(app, env, on_fragment=_print_fragment)
    chat = ChatApp(runtime.session)

    print(f"{app.ai_name} (type 'exit' to quit, '/help' for commands)")
    print(f"Model: {app.provider_name}/{app.model}")
    if runtime.session.storage_available:
        print(f"History: {app.storage_path} [{app.storage_key}]")
    else:
        print("History: not persisted (storage unavailable)")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()
    chat.print_welcome()
    print()

    try:
        while True:
            try:
                user_input = input(ChatApp.USER_PROMPT)
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()
            if trimmed in ("exit", "quit"):
                break
            if not trimmed:
                continue

            try:
                await chat.run(trimmed)
                print()
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")
    finally:
        runtime.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()

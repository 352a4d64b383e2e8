"""Command-line bootstrap for the Codenook editor shell."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, is_dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .ai.chat import ChatError, ChatService
from .ai.client import AIClient, ClientSettings
from .completion.channel import InProcessChannel
from .completion.provider import CompletionConfig, InlineCompletionProvider
from .completion.session import InlineCompletion
from .editor.document_model import CursorPosition, DocumentSnapshot
from .editor.languages import detect_language
from .services.completion_worker import CompletionWorker, CompletionWorkerConfig
from .services.settings import Settings, SettingsStore, redact_secret
from .utils import file_io
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CompletionRuntime:
    """Editor-side provider wired to an in-process completion worker."""

    channel: InProcessChannel
    provider: InlineCompletionProvider
    worker: CompletionWorker
    client: AIClient

    async def aclose(self) -> None:
        self.provider.dispose()
        await self.worker.aclose()
        self.channel.close()
        await self.client.aclose()


def configure_logging(debug: bool = False, *, log_dir: str | None = None) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, log_dir=log_dir, console=debug)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_ai_client(settings: Settings, *, debug_logging: bool = False) -> AIClient:
    client_settings = ClientSettings(
        base_url=settings.base_url,
        api_key=settings.api_key,
        model=settings.model,
        organization=settings.organization,
        request_timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        retry_min_seconds=settings.retry_min_seconds,
        retry_max_seconds=settings.retry_max_seconds,
        default_headers=settings.default_headers,
        metadata=settings.metadata,
        debug_logging=debug_logging or settings.debug_logging,
    )
    return AIClient(client_settings)


def build_completion_runtime(
    settings: Settings,
    *,
    client: AIClient | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> CompletionRuntime:
    """Wire an inline completion provider to a worker over an in-process channel."""

    active_client = client or build_ai_client(settings)
    completion = settings.completion
    channel = InProcessChannel(loop=loop)
    worker = CompletionWorker(
        channel,
        active_client,
        config=CompletionWorkerConfig(
            max_tokens=completion.max_tokens,
            temperature=completion.temperature,
        ),
        loop=loop,
    )
    worker.attach()
    provider = InlineCompletionProvider(
        channel,
        config=CompletionConfig(
            debounce_seconds=completion.debounce_seconds,
            timeout_seconds=completion.timeout_seconds,
            max_prefix_chars=completion.max_prefix_chars,
            max_suffix_chars=completion.max_suffix_chars,
        ),
        loop=loop,
    )
    return CompletionRuntime(channel=channel, provider=provider, worker=worker, client=active_client)


async def run_completion(
    settings: Settings,
    path: Path,
    position: CursorPosition,
    *,
    language: str | None = None,
    client: AIClient | None = None,
) -> InlineCompletion | None:
    """Request one inline completion for ``path`` at ``position``."""

    if not settings.completion.enabled:
        _LOGGER.info("Inline completions are disabled in settings.")
        return None
    snapshot = DocumentSnapshot(
        text=file_io.read_text(path),
        position=position,
        language=language or detect_language(path.name),
        path=path,
    )
    runtime = build_completion_runtime(settings, client=client)
    try:
        return await runtime.provider.provide_inline_completion(snapshot)
    finally:
        await runtime.aclose()


async def run_chat(settings: Settings, message: str, *, client: AIClient | None = None) -> str:
    active_client = client or build_ai_client(settings)
    try:
        return await ChatService(active_client, temperature=settings.temperature).send_message(message)
    finally:
        await active_client.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `codenook` console script."""

    args = _parse_cli_args(argv)

    debug = _env_flag("CODENOOK_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("CODENOOK_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return 2

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if settings.log_dir or (settings.debug_logging and not debug):
        configure_logging(debug or settings.debug_logging, log_dir=settings.log_dir)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return 0

    if args.command == "complete":
        return _run_complete_command(settings, args)
    if args.command == "chat":
        return _run_chat_command(settings, args)
    print("No command given; use 'complete' or 'chat' (see --help).", file=sys.stderr)
    return 2


def _run_complete_command(settings: Settings, args: argparse.Namespace) -> int:
    path = Path(args.file).expanduser()
    try:
        position = CursorPosition(args.line, args.column)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 2
    result = _run_async(run_completion(settings, path, position, language=args.language))
    if result is not None:
        sys.stdout.write(result.text)
        if not result.text.endswith("\n"):
            sys.stdout.write("\n")
    return 0


def _run_chat_command(settings: Settings, args: argparse.Namespace) -> int:
    try:
        answer = _run_async(run_chat(settings, args.message))
    except ChatError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    print(answer)
    return 0


def _run_async(coro: Any) -> Any:
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
        return None
    finally:
        _drain_event_loop(loop)
        loop.close()
        asyncio.set_event_loop(None)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks and shutdown async machinery before closing."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = None
        with contextlib.suppress(RuntimeError):
            current_task = asyncio.current_task(loop=loop)

        tasks = [
            task
            for task in asyncio.all_tasks(loop)
            if not task.done() and task is not current_task
        ]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="codenook",
        description="Request inline completions or chat answers from the configured model.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.codenook/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    subparsers = parser.add_subparsers(dest="command")

    complete = subparsers.add_parser("complete", help="Print an inline completion for a cursor position.")
    complete.add_argument("file", help="Document to complete.")
    complete.add_argument("--line", type=int, required=True, help="1-based cursor line.")
    complete.add_argument("--column", type=int, required=True, help="1-based cursor column.")
    complete.add_argument("--language", help="Language id (detected from the extension by default).")

    chat = subparsers.add_parser("chat", help="Ask the assistant a question.")
    chat.add_argument("message", help="Message to send.")
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is type(None) or normalized.lower() in {"none", "null"}:
        return None
    if is_dataclass(target):
        try:
            payload = json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dataclass overrides must be valid JSON") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dataclass overrides must be JSON objects")
        return payload
    if target is list:
        try:
            return json.loads(normalized or "[]")
        except json.JSONDecodeError as exc:
            raise ValueError("List overrides must be valid JSON arrays") from exc
    if target is dict:
        try:
            return json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    api_key = payload.get("api_key", "")
    if isinstance(api_key, str):
        payload["api_key"] = redact_secret(api_key)
    metadata = {
        "path": str(store.path),
        "log_path": str(logging_utils.current_log_path() or _default_log_path(settings)),
        "secret_backend": store.vault.strategy,
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": payload, "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("CODENOOK_"))


def _default_log_path(settings: Settings) -> Path:
    return logging_utils.resolve_log_dir(settings.log_dir) / logging_utils.LOG_FILE_NAME


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())

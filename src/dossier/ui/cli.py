"""Command-line interface router for dossier."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from dossier import __version__
from dossier.config import (
    ConfigLoadError,
    ConfigStore,
    ConfigStoreError,
    ConfigValidationError,
    DossierConfig,
    LoadedConfig,
    apply_setting,
    decline_setting,
    is_valid_date,
    redact_config,
    unset_setting,
    validate_config,
)
from dossier.constants import DEFAULT_OUTPUT_FILE, LOG_LEVEL_ENV
from dossier.document import format_token_count, render_document, summarize, write_document
from dossier.main import ExitCode
from dossier.observability import parse_log_level, setup_logging, shutdown_logging
from dossier.plugins import ConfigurationCancelled, ConfigureOptions, ExecutionReport
from dossier.producers import build_default_manager
from dossier.producers.slack_ai import build_slack_ai_prompt
from dossier.prompt import build_resume_prompt, prompt_path_for
from dossier.ui.prompts import ConsolePrompter, Prompter
from dossier.ui.render import CLIRenderer, create_renderer

if TYPE_CHECKING:
    import httpx

    from dossier.document import DocumentSummary


class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    def __init__(self, message: str, exit_code: int = ExitCode.VALIDATION_FAILED) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = int(exit_code)

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="dossier",
        description=(
            "dossier — collect work-history data into one Markdown document.\n\n"
            "Common workflows:\n"
            "  dossier generate              Configure (first run) and build the document\n"
            "  dossier generate --reset      Re-ask every configuration question\n"
            "  dossier config --set k=v      Edit a saved setting\n"
            "  dossier plugins               List producers in execution order\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to the JSON config (default: $DOSSIER_CONFIG or ./.dossier.json).",
    )
    common.add_argument(
        "--log-level",
        default=None,
        help=f"Log level for diagnostics (default: ${LOG_LEVEL_ENV} or WARNING).",
    )
    common.add_argument("--log-file", default=None, help="Also write JSON-lines logs here.")
    common.add_argument(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit console diagnostics as JSON lines.",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output (and INFO diagnostics).",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # generate ------------------------------------------------------------
    generate_parser = subparsers.add_parser(
        "generate",
        parents=[common],
        help="Build the work-history document",
        description=(
            "Load the saved configuration (asking for it on first run or with --reset),\n"
            "run every eligible producer, and write the aggregated Markdown document\n"
            "plus a ready-to-paste AI prompt next to it (<output>-prompt.md).\n\n"
            "Examples:\n"
            "  dossier generate\n"
            "  dossier generate --reset\n"
            "  dossier generate --start-date 2024-01-01 --end-date 2024-12-31 -o 2024.md\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    generate_parser.add_argument(
        "--reset", action="store_true", help="Re-ask every configuration question"
    )
    generate_parser.add_argument("--company", "-c", default=None, help="Override company name")
    generate_parser.add_argument("--start-date", "-s", default=None, help="Override start date")
    generate_parser.add_argument("--end-date", "-e", default=None, help="Override end date")
    generate_parser.add_argument(
        "--output",
        "-o",
        default=DEFAULT_OUTPUT_FILE,
        help=f"Output file path (default: {DEFAULT_OUTPUT_FILE})",
    )
    generate_parser.set_defaults(handler=_cmd_generate)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show or edit the saved configuration (secrets masked)",
        description=(
            "Display the saved configuration with secrets masked, or edit it.\n"
            "--unset makes the next 'generate --reset' ask again; --decline marks an\n"
            "optional integration as refused.\n\n"
            "Examples:\n"
            "  dossier config\n"
            "  dossier config --set company_name=Acme --set max_commits=50\n"
            "  dossier config --unset github_token\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    config_parser.add_argument(
        "--set", dest="set_values", action="append", default=[], metavar="KEY=VALUE"
    )
    config_parser.add_argument(
        "--unset", dest="unset_keys", action="append", default=[], metavar="KEY"
    )
    config_parser.add_argument(
        "--decline", dest="decline_keys", action="append", default=[], metavar="KEY"
    )
    config_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    config_parser.set_defaults(handler=_cmd_config)

    # validate ------------------------------------------------------------
    validate_parser = subparsers.add_parser(
        "validate",
        parents=[common],
        help="Check that the configuration is ready for generation",
    )
    validate_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    validate_parser.set_defaults(handler=_cmd_validate)

    # plugins -------------------------------------------------------------
    plugins_parser = subparsers.add_parser(
        "plugins",
        parents=[common],
        help="List producers in execution order",
    )
    plugins_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    plugins_parser.set_defaults(handler=_cmd_plugins)

    # slack-prompt --------------------------------------------------------
    slack_parser = subparsers.add_parser(
        "slack-prompt",
        parents=[common],
        help="Print a Slack AI prompt for the configured period",
    )
    slack_parser.add_argument("--start-date", "-s", default=None, help="Start date (YYYY-MM-DD)")
    slack_parser.add_argument("--end-date", "-e", default=None, help="End date (YYYY-MM-DD)")
    slack_parser.add_argument(
        "--channels", default="", help="Channels to focus on (comma separated)"
    )
    slack_parser.set_defaults(handler=_cmd_slack_prompt)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(
    argv: Sequence[str] | None = None,
    *,
    prompter: Prompter | None = None,
    github_transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Parse argv, route to a command handler, and return the process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return int(ExitCode.CONFIG_ERROR)
    namespace.prompter = prompter
    namespace.github_transport = github_transport

    try:
        handle = setup_logging(
            _log_level(namespace),
            log_file=namespace.log_file,
            json_output=_flag(namespace, "log_json"),
        )
    except (ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return int(ExitCode.CONFIG_ERROR)

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    finally:
        shutdown_logging(handle)
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_generate(args: argparse.Namespace) -> int:
    renderer = _get_renderer(args)
    store = _config_store(args)
    loaded = _load_config(store)
    config = loaded.config

    with build_default_manager(
        _prompter(args), store=store, github_transport=args.github_transport
    ) as manager:
        if args.reset or loaded.path is None:
            if loaded.path is None:
                renderer.text("No configuration found. Let's set one up.\n")
            else:
                renderer.text("Resetting configuration...\n")
            try:
                config = asyncio.run(
                    manager.run_config_prompts(config, ConfigureOptions(reset=args.reset))
                )
            except ConfigurationCancelled:
                renderer.warning("Configuration cancelled.")
                return int(ExitCode.SUCCESS)

        config = _apply_overrides(config, args)
        validation = validate_config(config)
        if not validation.is_valid:
            renderer.error("Missing required configuration.")
            renderer.items([f"{issue.path}: {issue.message}" for issue in validation.errors])
            renderer.hint("Run 'dossier generate --reset' to configure.")
            return int(ExitCode.VALIDATION_FAILED)

        report = asyncio.run(manager.execute(config))
        fragments = manager.aggregate(report.fragments)

    document = render_document(fragments, config)
    prompt = build_resume_prompt(document, config)
    output = Path(args.output).expanduser()
    prompt_output = prompt_path_for(output)
    for path, text in ((output, document), (prompt_output, prompt)):
        try:
            write_document(path, text)
        except OSError as exc:
            raise CLIError(
                f"unable to write {path}: {exc}", exit_code=ExitCode.CONFIG_ERROR
            ) from exc

    _render_generation_summary(
        renderer, output, prompt_output, report, summarize(fragments, prompt)
    )
    return int(ExitCode.SUCCESS)


def _cmd_config(args: argparse.Namespace) -> int:
    renderer = _get_renderer(args)
    store = _config_store(args)
    config = _load_config(store).config

    if args.set_values or args.unset_keys or args.decline_keys:
        config = _apply_edits(config, args)
        try:
            store.save(config)
        except ConfigStoreError as exc:
            raise CLIError(str(exc), exit_code=ExitCode.CONFIG_ERROR) from exc
        if not _flag(args, "json"):
            renderer.success(f"Configuration saved to {store.path}")

    display = redact_config(config, _sensitive_fields(args))
    if _flag(args, "json"):
        _emit_json(
            {
                "command": "config",
                "path": str(store.path),
                "exists": store.exists(),
                "config": display,
            }
        )
        return int(ExitCode.SUCCESS)

    location = str(store.path) if store.exists() else f"{store.path} (not created yet)"
    renderer.kv("Config file", location)
    renderer.table(("Key", "Value"), [(key, value) for key, value in display.items()])
    return int(ExitCode.SUCCESS)


def _cmd_validate(args: argparse.Namespace) -> int:
    renderer = _get_renderer(args)
    store = _config_store(args)
    config = _load_config(store).config
    result = validate_config(config)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "validate",
                "valid": result.is_valid,
                "errors": [{"path": i.path, "message": i.message} for i in result.errors],
                "warnings": [{"path": i.path, "message": i.message} for i in result.warnings],
            }
        )
    else:
        for issue in result.errors:
            renderer.error(f"{issue.path}: {issue.message}")
        for issue in result.warnings:
            renderer.warning(f"{issue.path}: {issue.message}")
        if result.is_valid:
            renderer.success("Configuration is ready.")
        elif not store.exists():
            renderer.hint("No configuration file yet. Run 'dossier generate' to create one.")

    return int(ExitCode.SUCCESS if result.is_valid else ExitCode.VALIDATION_FAILED)


def _cmd_plugins(args: argparse.Namespace) -> int:
    renderer = _get_renderer(args)
    with build_default_manager(_prompter(args)) as manager:
        producers = manager.producers()

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "plugins",
                "plugins": [
                    {
                        "identity": producer.descriptor.identity,
                        "name": producer.descriptor.name,
                        "needs": list(producer.descriptor.needs),
                        "priority": getattr(producer, "priority", None),
                        "sensitive_fields": sorted(producer.descriptor.sensitive_fields),
                    }
                    for producer in producers
                ],
            }
        )
        return int(ExitCode.SUCCESS)

    rows = []
    for index, producer in enumerate(producers, start=1):
        descriptor = producer.descriptor
        priority = getattr(producer, "priority", None)
        rows.append(
            (
                str(index),
                descriptor.identity,
                descriptor.name,
                ", ".join(descriptor.needs) or "-",
                "-" if priority is None else str(priority),
            )
        )
    renderer.table(
        ("Order", "Id", "Name", "Needs", "Priority"), rows, title="Producers (execution order)"
    )
    return int(ExitCode.SUCCESS)


def _cmd_slack_prompt(args: argparse.Namespace) -> int:
    renderer = _get_renderer(args)
    config = _load_config(_config_store(args)).config
    start = _optional_str(args.start_date) or config.start_date
    end = _optional_str(args.end_date) or config.end_date
    for label, value in (("start date", start), ("end date", end)):
        if value and not is_valid_date(value):
            raise CLIError(f"invalid {label} {value!r}; use YYYY-MM-DD", ExitCode.CONFIG_ERROR)

    renderer.text(build_slack_ai_prompt(start, end, args.channels or ""))
    renderer.hint("Paste this into Slack AI, then save its answer for 'dossier generate'.")
    return int(ExitCode.SUCCESS)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _render_generation_summary(
    renderer: CLIRenderer,
    output: Path,
    prompt_output: Path,
    report: ExecutionReport,
    summary: DocumentSummary,
) -> None:
    renderer.success(f"\nDocument written to: {output}")
    renderer.success(f"Prompt exported to: {prompt_output}")
    renderer.section("Data Summary")
    renderer.kv("Sections generated", summary.section_count)
    renderer.kv("Estimated prompt tokens", format_token_count(summary.document_tokens))

    rows = []
    for outcome in report.outcomes:
        detail = outcome.error or ""
        if detail and not renderer.verbose:
            detail = detail.splitlines()[0][:60]
        rows.append((outcome.identity, outcome.status.value, str(outcome.fragment_count), detail))
    renderer.table(("Producer", "Status", "Sections", "Detail"), rows, title="Producers:")

    if summary.is_large:
        renderer.warning(
            f"Large document ({format_token_count(summary.document_tokens)} tokens); "
            "it may exceed some AI model context limits."
        )
        renderer.hint("Consider generating for a shorter period (e.g. year by year).")

    renderer.hint("\nNext steps:")
    renderer.items(
        [
            f"Open {prompt_output.name}",
            "Copy the entire content",
            "Paste it into your preferred AI assistant",
        ]
    )


def _apply_overrides(config: DossierConfig, args: argparse.Namespace) -> DossierConfig:
    overrides = {
        "company_name": _optional_str(args.company),
        "start_date": _optional_str(args.start_date),
        "end_date": _optional_str(args.end_date),
    }
    changes = {key: value for key, value in overrides.items() if value is not None}
    return config.evolve(**changes) if changes else config


def _apply_edits(config: DossierConfig, args: argparse.Namespace) -> DossierConfig:
    try:
        for item in args.set_values:
            key, separator, value = item.partition("=")
            if not separator:
                raise CLIError(f"expected KEY=VALUE, got {item!r}", ExitCode.CONFIG_ERROR)
            config = apply_setting(config, key, value)
        for key in args.unset_keys:
            config = unset_setting(config, key)
        for key in args.decline_keys:
            config = decline_setting(config, key)
    except ConfigValidationError as exc:
        raise CLIError(str(exc), exit_code=ExitCode.CONFIG_ERROR) from exc
    return config


def _sensitive_fields(args: argparse.Namespace) -> frozenset[str]:
    with build_default_manager(_prompter(args)) as manager:
        return manager.sensitive_fields()


def _config_store(args: argparse.Namespace) -> ConfigStore:
    return ConfigStore(_optional_str(getattr(args, "config_path", None)))


def _load_config(store: ConfigStore) -> LoadedConfig:
    try:
        return store.load()
    except ConfigLoadError as exc:
        raise CLIError(str(exc), exit_code=ExitCode.CONFIG_ERROR) from exc


def _prompter(args: argparse.Namespace) -> Prompter:
    configured = getattr(args, "prompter", None)
    return configured if configured is not None else ConsolePrompter()


def _log_level(args: argparse.Namespace) -> int:
    raw = _optional_str(getattr(args, "log_level", None)) or os.environ.get(LOG_LEVEL_ENV, "")
    if raw.strip():
        return parse_log_level(raw)
    return parse_log_level("INFO" if _flag(args, "verbose") else "WARNING")


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"), verbose=_flag(args, "verbose"))


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CLIError("invalid optional string argument", exit_code=ExitCode.CONFIG_ERROR)
    cleaned = value.strip()
    return cleaned or None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]

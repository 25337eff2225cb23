"""CLI entrypoints for promptforge commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

from .config import ConfigError, ForgeConfig, load_config
from .diff import diff, format_diff
from .logging import configure_logging
from .models import EnhancementOptions, PromptBuildContext, PromptTarget
from .optimizer import ModelFamily, OptimizationInput, ScenarioProfile, UserOverrides
from .optimizer.weights import resolve_weights
from .preview import PreviewFormat, build_preview
from .prompting import parse_prompt_input
from .stores.history import entry_to_dict
from .stores.library import format_timestamp, item_to_dict
from .stores.templates import TemplateSort, template_to_dict
from .validators import failed_checks, require_passing
from .workbench import ForgeResult, Workbench, forge_prompt


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_input_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "input",
        nargs="?",
        default="-",
        help="Input file ('-' or omitted reads stdin).",
    )


def _add_json_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text.")


def _subcommand(
    subparsers: "argparse._SubParsersAction[argparse.ArgumentParser]", name: str, help_text: str
) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(name, help=help_text)
    _add_verbose_option(parser, suppress_default=True)
    return parser


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptforge",
        description="Turn rough task descriptions into structured, target-specific prompts.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        default=".",
        help="Path to .promptforge.yml or the directory containing it (defaults to cwd).",
    )
    parser.add_argument(
        "--log-file",
        help="Also write timestamped logs to this file (overrides logging.file).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    forge_parser = _subcommand(subparsers, "forge", "Forge a structured prompt from rough input.")
    _add_input_argument(forge_parser)
    forge_parser.add_argument("--target", help="Target: claude, gemini, perplexity or agentic.")
    forge_parser.add_argument(
        "--option",
        action="append",
        default=[],
        metavar="KEY=BOOL",
        help="Override an enhancement option (repeatable).",
    )
    forge_parser.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Fill a {variable} placeholder (repeatable).",
    )
    forge_parser.add_argument(
        "--no-history", action="store_true", help="Do not record this run in history."
    )
    forge_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when an error-severity quality check fails.",
    )
    _add_json_option(forge_parser)

    optimize_parser = _subcommand(
        subparsers, "optimize", "Rewrite a prompt offline and suggest model settings."
    )
    _add_input_argument(optimize_parser)
    optimize_parser.add_argument("--model-family", help="Model family slug, e.g. openai or local.")
    optimize_parser.add_argument("--scenario", help="Scenario slug, e.g. general, cli or json.")
    optimize_parser.add_argument("--target", help="Optional target used for domain packs.")
    optimize_parser.add_argument("--temperature", type=float, help="Override temperature.")
    optimize_parser.add_argument("--top-p", type=float, help="Override top_p.")
    optimize_parser.add_argument("--max-tokens", type=int, help="Override max tokens.")
    optimize_parser.add_argument(
        "--strict-json",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Force the strict JSON contract on or off.",
    )
    optimize_parser.add_argument(
        "--no-preamble", action="store_true", help="Skip the system preamble."
    )
    optimize_parser.add_argument(
        "--advise", action="store_true", help="Ask the configured local model for advice."
    )
    _add_json_option(optimize_parser)

    diff_parser = _subcommand(subparsers, "diff", "Line diff between two files.")
    diff_parser.add_argument("old", help="Original file.")
    diff_parser.add_argument("new", help="Updated file.")

    preview_parser = _subcommand(subparsers, "preview", "Structured preview of rough input.")
    _add_input_argument(preview_parser)
    preview_parser.add_argument(
        "--format",
        default="plain",
        choices=["plain", "markdown", "json"],
        help="Preview format (defaults to plain).",
    )

    library_parser = _subcommand(subparsers, "library", "Manage the versioned prompt library.")
    library_sub = library_parser.add_subparsers(dest="library_command", required=True)
    list_parser = library_sub.add_parser("list", help="List or search prompts.")
    list_parser.add_argument("--query", default="", help="Search title, body and tags.")
    list_parser.add_argument("--category", help="Category id filter.")
    list_parser.add_argument("--tag", help="Tag id filter.")
    _add_json_option(list_parser)
    add_parser = library_sub.add_parser("add", help="Store a new prompt.")
    add_parser.add_argument("--title", required=True, help="Prompt title.")
    _add_input_argument(add_parser)
    add_parser.add_argument("--category", help="Category id.")
    add_parser.add_argument("--tag", action="append", default=[], help="Tag id (repeatable).")
    show_parser = library_sub.add_parser("show", help="Show a prompt and its versions.")
    show_parser.add_argument("prompt_id")
    _add_json_option(show_parser)
    update_parser = library_sub.add_parser("update", help="Update a prompt body or metadata.")
    update_parser.add_argument("prompt_id")
    update_parser.add_argument("input", nargs="?", help="New body file ('-' reads stdin).")
    update_parser.add_argument("--title", help="New title.")
    update_parser.add_argument("--category", help="Category id ('' clears it).")
    update_parser.add_argument("--tag", action="append", help="Tag id (repeatable).")
    rollback_parser = library_sub.add_parser("rollback", help="Restore an earlier version.")
    rollback_parser.add_argument("prompt_id")
    rollback_parser.add_argument("version_id")
    delete_parser = library_sub.add_parser("delete", help="Delete a prompt.")
    delete_parser.add_argument("prompt_id")
    for name in ("category", "tag"):
        create = library_sub.add_parser(f"{name}-add", help=f"Create a {name}.")
        create.add_argument("name")
        remove = library_sub.add_parser(f"{name}-delete", help=f"Delete a {name} by id.")
        remove.add_argument(f"{name}_id")

    templates_parser = _subcommand(subparsers, "templates", "Browse and organise templates.")
    templates_sub = templates_parser.add_subparsers(dest="templates_command", required=True)
    tlist_parser = templates_sub.add_parser("list", help="List visible templates.")
    tlist_parser.add_argument("--query", default="", help="Match name, category or tags.")
    tlist_parser.add_argument("--category", help="Exact category filter.")
    tlist_parser.add_argument("--target", help="Target filter.")
    tlist_parser.add_argument(
        "--sort",
        default="updated",
        choices=["updated", "created", "name"],
        help="Sort order (defaults to recently updated).",
    )
    _add_json_option(tlist_parser)
    rename_parser = templates_sub.add_parser("rename-category", help="Rename or merge a category.")
    rename_parser.add_argument("source")
    rename_parser.add_argument("destination")
    tdelete_parser = templates_sub.add_parser(
        "delete-category", help="Move a category's templates to Uncategorized."
    )
    tdelete_parser.add_argument("category")

    history_parser = _subcommand(subparsers, "history", "Show or clear forge history.")
    history_sub = history_parser.add_subparsers(dest="history_command", required=True)
    hlist_parser = history_sub.add_parser("list", help="List recent forge runs.")
    hlist_parser.add_argument("--limit", type=int, default=10, help="Entries to show.")
    _add_json_option(hlist_parser)
    hclear_parser = history_sub.add_parser("clear", help="Remove all history entries.")
    hclear_parser.add_argument(
        "--force", action="store_true", help="Overwrite stored history even if it could not be read."
    )

    weights_parser = _subcommand(subparsers, "weights", "Inspect or recalibrate optimizer weights.")
    weights_sub = weights_parser.add_subparsers(dest="weights_command", required=True)
    weights_sub.add_parser("show", help="Print the weights the optimizer would use.")
    weights_sub.add_parser("learn", help="Learn weights from recent history and save them.")
    weights_sub.add_parser("reset", help="Delete saved weights.")

    serve_parser = _subcommand(subparsers, "serve", "Run the HTTP service.")
    serve_parser.add_argument("--host", help="Bind host (defaults to config or 127.0.0.1).")
    serve_parser.add_argument("--port", type=int, help="Bind port (defaults to config or 8000).")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for promptforge commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    handler = _HANDLERS[args.command]
    try:
        config = load_config(Path(args.config))
        configure_logging(
            verbose=bool(args.verbose),
            level=config.logging.level,
            log_file=Path(args.log_file) if args.log_file else config.logging.file,
        )
        handler(parser, args, config)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    except FileNotFoundError as exc:
        parser.exit(1, f"{args.command} failed: {exc}\n")
    except (LookupError, RuntimeError, ValueError) as exc:
        parser.exit(
            1, f"{args.command} failed: {exc}\nRun with --verbose for more details.\n"
        )


# ----------------------------------------------------------------------
# Command handlers


def _run_forge(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    text = _read_input(args.input)
    target = PromptTarget.parse(args.target) if args.target else config.target
    options = _apply_option_overrides(parser, config.options, args.option)
    variables = _parse_pairs(parser, args.var, "--var")
    if args.no_history:
        result = forge_prompt(text, target=target, options=options, variables=variables)
    else:
        result = Workbench(config).forge(
            text, target=target, options=options, variables=variables
        )
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(result.generated)
    _report_checks(result)
    if args.strict:
        require_passing(result.checks)


def _run_optimize(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    text = _read_input(args.input)
    request = OptimizationInput(
        raw_text=text,
        model_family=ModelFamily.parse(args.model_family)
        if args.model_family
        else config.optimizer.model_family,
        scenario=ScenarioProfile.parse(args.scenario) if args.scenario else config.optimizer.scenario,
        target=PromptTarget.parse(args.target) if args.target else None,
        overrides=UserOverrides(
            temperature=args.temperature,
            top_p=args.top_p,
            max_tokens=args.max_tokens,
            strict_json=args.strict_json,
            disable_system_preamble=bool(args.no_preamble),
        ),
    )
    output = Workbench(config).optimize(request, advise=bool(args.advise))
    if args.json:
        print(json.dumps(output.to_dict(), indent=2))
        return
    print(output.optimized_text)
    print(
        f"\n# {output.selected_candidate} (score {output.score}); "
        f"temperature={output.temperature} top_p={output.top_p} max_tokens={output.max_tokens}",
        file=sys.stderr,
    )
    for warning in output.warnings:
        print(f"warning: {warning}", file=sys.stderr)
    if output.advisory:
        print(f"\nAdvisory:\n{output.advisory}", file=sys.stderr)


def _run_diff(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    old = Path(args.old).read_text(encoding="utf-8")
    new = Path(args.new).read_text(encoding="utf-8")
    print(format_diff(diff(old, new)))


def _run_preview(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    text = _read_input(args.input)
    parsed = parse_prompt_input(text, prefer_structured=config.options.prefer_section_aware_parsing)
    context = PromptBuildContext(
        goal=parsed.goal,
        context=parsed.context,
        constraints=list(parsed.constraints),
        deliverables=list(parsed.deliverables),
    )
    print(build_preview(context, PreviewFormat.parse(args.format)))


def _run_library(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    library = Workbench(config).library
    command = args.library_command
    if command == "list":
        prompts = library.search(args.query, category_id=args.category, tag_id=args.tag)
        if args.json:
            print(json.dumps([item_to_dict(prompt) for prompt in prompts], indent=2))
            return
        if not prompts:
            print("No prompts found")
        for prompt in prompts:
            tags = ", ".join(library.tag_names(prompt.tag_ids))
            suffix = f" [{tags}]" if tags else ""
            print(f"{prompt.id}  {prompt.title}  ({library.category_name(prompt.category_id)}){suffix}")
    elif command == "add":
        body = _read_input(args.input)
        prompt = library.create_prompt(
            args.title, body, category_id=args.category, tag_ids=args.tag
        )
        print(f"Created prompt {prompt.id}")
    elif command == "show":
        prompt = library.get_prompt(args.prompt_id)
        if args.json:
            print(json.dumps(item_to_dict(prompt), indent=2))
            return
        print(f"{prompt.title} ({library.category_name(prompt.category_id)})")
        print(prompt.body)
        print("\nVersions:")
        for version in prompt.versions:
            note = f"  {version.note}" if version.note else ""
            print(f"  {version.id}  {format_timestamp(version.created_at)}{note}")
    elif command == "update":
        if args.title is not None or args.category is not None or args.tag is not None:
            kwargs: Dict[str, object] = {"title": args.title, "tag_ids": args.tag}
            if args.category is not None:
                kwargs["category_id"] = args.category or None
            library.update_prompt(args.prompt_id, **kwargs)  # type: ignore[arg-type]
        if args.input is not None:
            prompt = library.update_body(args.prompt_id, _read_input(args.input))
            print(f"Prompt {prompt.id} now has {len(prompt.versions)} versions")
        else:
            print(f"Updated prompt {args.prompt_id}")
    elif command == "rollback":
        version = library.rollback(args.prompt_id, args.version_id)
        print(f"Rolled back; new version {version.id}")
    elif command == "delete":
        library.delete_prompt(args.prompt_id)
        print(f"Deleted prompt {args.prompt_id}")
    elif command == "category-add":
        category = library.create_category(args.name)
        print(f"{category.id}  {category.name}")
    elif command == "category-delete":
        library.delete_category(args.category_id)
        print(f"Deleted category {args.category_id}")
    elif command == "tag-add":
        tag = library.create_tag(args.name)
        print(f"{tag.id}  {tag.name}")
    elif command == "tag-delete":
        library.delete_tag(args.tag_id)
        print(f"Deleted tag {args.tag_id}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown library command\n")


def _run_templates(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    templates = Workbench(config).templates
    command = args.templates_command
    if command == "list":
        visible = templates.visible(
            args.query,
            category=args.category,
            target=PromptTarget.parse(args.target) if args.target else None,
            sort=TemplateSort.parse(args.sort),
        )
        if args.json:
            print(json.dumps([template_to_dict(template) for template in visible], indent=2))
            return
        for template in visible:
            print(f"{template.id}  {template.name}  [{template.category}]  {template.target.slug}")
    elif command == "rename-category":
        moved = templates.rename_category(args.source, args.destination)
        print(f"Moved {moved} templates to {args.destination.strip()}")
    elif command == "delete-category":
        moved = templates.delete_category(args.category)
        print(f"Moved {moved} templates to Uncategorized")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown templates command\n")


def _run_history(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    history = Workbench(config).history
    if args.history_command == "clear":
        if not history.clear(force=args.force):
            parser.exit(1, "history failed: stored history could not be read; rerun with --force to overwrite it\n")
        print("History cleared.")
        return
    entries = history.entries[: max(args.limit, 0)]
    if args.json:
        print(json.dumps([entry_to_dict(entry) for entry in entries], indent=2))
        return
    if not entries:
        print("No history")
    for entry in entries:
        first_line = entry.original_input.strip().splitlines()[0] if entry.original_input.strip() else ""
        print(f"{format_timestamp(entry.timestamp)}  {entry.target.slug}  {first_line[:60]}")


def _run_weights(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    workbench = Workbench(config)
    command = args.weights_command
    if command == "learn":
        learned = workbench.learn_and_save_weights()
        if learned is None:
            parser.exit(1, "weights failed: not enough history to learn from (need 5 entries)\n")
        print(json.dumps(learned.to_dict(), indent=2, sort_keys=True))
    elif command == "reset":
        workbench.weights.clear()
        print("Saved weights removed.")
    else:
        weights, source = resolve_weights(workbench.resolved_weights(), workbench.history_inputs())
        print(f"# source: {source}")
        print(json.dumps(weights.to_dict(), indent=2, sort_keys=True))


def _run_serve(parser: argparse.ArgumentParser, args: argparse.Namespace, config: ForgeConfig) -> None:
    from .service import run_service

    host = args.host or config.service.host
    port = args.port or config.service.port
    run_service(host=host, port=port, config_path=Path(args.config))


_HANDLERS: Dict[
    str, Callable[[argparse.ArgumentParser, argparse.Namespace, ForgeConfig], None]
] = {
    "forge": _run_forge,
    "optimize": _run_optimize,
    "diff": _run_diff,
    "preview": _run_preview,
    "library": _run_library,
    "templates": _run_templates,
    "history": _run_history,
    "weights": _run_weights,
    "serve": _run_serve,
}


# ----------------------------------------------------------------------
# Internal helpers


def _read_input(source: Optional[str]) -> str:
    if source is None or source == "-":
        return sys.stdin.read()
    return Path(source).expanduser().read_text(encoding="utf-8")


def _parse_pairs(
    parser: argparse.ArgumentParser, values: Sequence[str], flag: str
) -> Dict[str, str]:
    pairs: Dict[str, str] = {}
    for raw in values:
        if "=" not in raw:
            parser.error(f"{flag} expects NAME=VALUE, got {raw!r}")
        key, value = raw.split("=", 1)
        pairs[key.strip()] = value
    return pairs


def _apply_option_overrides(
    parser: argparse.ArgumentParser, base: EnhancementOptions, values: Sequence[str]
) -> EnhancementOptions:
    if not values:
        return base
    merged: Dict[str, object] = dict(base.to_dict())
    known = set(EnhancementOptions.option_names()) | set(merged)
    for key, raw in _parse_pairs(parser, values, "--option").items():
        if key not in known:
            parser.error(f"Unknown option {key!r}")
        lowered = raw.strip().lower()
        if lowered not in {"true", "false", "yes", "no", "1", "0", "on", "off"}:
            parser.error(f"--option {key} expects a boolean, got {raw!r}")
        flag = lowered in {"true", "yes", "1", "on"}
        # Snake-case keys win over the camelCase defaults copied above.
        merged.pop(_CAMEL_FOR.get(key, key), None)
        merged[key] = flag
    return EnhancementOptions.from_dict(merged)


_CAMEL_FOR: Dict[str, str] = {
    name: "".join(
        part if index == 0 else part.capitalize() for index, part in enumerate(name.split("_"))
    )
    for name in EnhancementOptions.option_names()
}


def _report_checks(result: ForgeResult) -> None:
    for check in failed_checks(result.checks):
        detail = f" ({check.detail})" if check.detail else ""
        print(f"{check.severity.value}: {check.title}{detail}", file=sys.stderr)


if __name__ == "__main__":
    main(sys.argv[1:])

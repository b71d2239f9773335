"""
LKR CLI — manage LLM API keys in the OS keychain.

Usage:
    lkr set openai:prod             # Prompt for a key and store it
    lkr set openai:admin --kind admin
    lkr get openai:prod             # Masked value
    lkr list [--all]                # Stored keys (admin keys with --all)
    lkr rm openai:prod              # Remove a key
    lkr gen .env.example            # Render .env with stored keys
    lkr usage [openai]              # Month-to-date cost via admin keys
    lkr version
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import sys
from pathlib import Path

from lkr.errors import BatchError, KeyNotFound, LkrError, TemplateError
from lkr.keys import KeyKind, KeyStore


def main(argv: list[str] | None = None, store: KeyStore | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="lkr",
        description="LLM Key Ring — API keys in your OS keychain, injected into configs on demand.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers = parser.add_subparsers(dest="command")

    # set
    set_parser = subparsers.add_parser("set", help="Store an API key")
    set_parser.add_argument("name", help="Key name in provider:label format (e.g. openai:prod)")
    set_parser.add_argument(
        "--kind",
        choices=[k.value for k in KeyKind],
        default=KeyKind.RUNTIME.value,
        help="Key kind (default: runtime)",
    )
    set_parser.add_argument("--force", action="store_true", help="Overwrite an existing key")

    # get
    get_parser = subparsers.add_parser("get", help="Show a stored key (masked by default)")
    get_parser.add_argument("name", help="Key name in provider:label format")
    get_parser.add_argument("--show", action="store_true", help="Show the raw value")
    get_parser.add_argument(
        "--plain", action="store_true", help="Print the raw value only (for piping)"
    )
    get_parser.add_argument(
        "--force-plain",
        action="store_true",
        help="Allow raw output when stdout is not a terminal (use with caution)",
    )

    # list
    list_parser = subparsers.add_parser("list", help="List stored keys")
    list_parser.add_argument("--all", action="store_true", help="Include admin keys")

    # rm
    rm_parser = subparsers.add_parser("rm", help="Remove a key")
    rm_parser.add_argument("name", help="Key name in provider:label format")
    rm_parser.add_argument("--force", action="store_true", help="Skip confirmation prompt")

    # gen
    gen_parser = subparsers.add_parser("gen", help="Generate a config file from a template")
    gen_parser.add_argument("template", help="Template file (e.g. .env.example, .mcp.json.template)")
    gen_parser.add_argument(
        "-o", "--output", help="Output path (default: template name without .example/.template)"
    )
    gen_parser.add_argument("--force", action="store_true", help="Overwrite output without asking")

    # usage
    usage_parser = subparsers.add_parser("usage", help="Show month-to-date cost")
    usage_parser.add_argument("provider", nargs="?", help="Provider (default: all with admin keys)")
    usage_parser.add_argument("--refresh", action="store_true", help="Bypass the cache")

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from lkr import __version__

        print(f"lkr {__version__}")
        return 0

    if args.command is None:
        parser.print_help()
        return 0

    try:
        _configure_logging()
        if store is None:
            store = KeyStore.default()
    except ValueError as e:
        # Bad LKR_* environment configuration
        _err(f"Error: {e}")
        return 1

    try:
        if args.command == "set":
            return _cmd_set(store, args)
        elif args.command == "get":
            return _cmd_get(store, args)
        elif args.command == "list":
            return _cmd_list(store, args)
        elif args.command == "rm":
            return _cmd_rm(store, args)
        elif args.command == "gen":
            return _cmd_gen(store, args)
        elif args.command == "usage":
            return _cmd_usage(store, args)
    except KeyNotFound as e:
        _err(f"Error: {e}")
        suggestions = store.suggest(e.name)
        if suggestions:
            _err("\n  Did you mean?")
            for s in suggestions:
                _err(f"    {s}")
        _err("\n  Run `lkr list` to see all stored keys.")
        return 1
    except LkrError as e:
        _err(f"Error: {e}")
        return 1

    parser.print_help()
    return 0


def _configure_logging() -> None:
    from lkr.config import get_config

    logging.basicConfig(
        level=getattr(logging, get_config().log_level, logging.WARNING),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _err(message: str = "") -> None:
    print(message, file=sys.stderr)


def _stdout_is_tty() -> bool:
    return sys.stdout.isatty()


def _confirm(prompt: str) -> bool:
    print(f"{prompt} [y/N] ", end="", file=sys.stderr, flush=True)
    answer = sys.stdin.readline()
    return answer.strip().lower() == "y"


def _cmd_set(store: KeyStore, args: argparse.Namespace) -> int:
    kind = KeyKind(args.kind)
    # Read from a prompt, not argv, so the key never lands in shell history
    value = getpass.getpass(f"Enter API key for {args.name}: ")
    try:
        store.set(args.name, value.strip(), kind, force=args.force)
    finally:
        del value
    _err(f"Stored {args.name} (kind: {kind})")
    return 0


def _cmd_get(store: KeyStore, args: argparse.Namespace) -> int:
    is_tty = _stdout_is_tty()

    # Raw values never go to a pipe unless explicitly forced
    if (args.plain or args.show) and not is_tty and not args.force_plain:
        _err("Error: --plain and --show are blocked in non-interactive environments.")
        _err("  This prevents scripts and agents from extracting raw API keys via pipe.")
        _err("  Use --force-plain to override (at your own risk).")
        return 2
    if args.force_plain and not is_tty:
        _err("Warning: outputting raw key value in non-interactive environment.")

    value, kind = store.get(args.name)
    with value:
        if args.plain or args.force_plain:
            sys.stdout.write(value.reveal())
            sys.stdout.flush()
            return 0

        display = value.reveal() if args.show else value.masked()
        if args.json:
            print(json.dumps({"name": args.name, "kind": str(kind), "value": display}, indent=2))
        elif args.show:
            print(display)
        else:
            print(f"  {display}  ({kind})")
    return 0


def _cmd_list(store: KeyStore, args: argparse.Namespace) -> int:
    entries = store.list(include_admin=args.all)

    if args.json:
        print(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return 0

    if not entries:
        _err("No keys stored.\n")
        _err("  Get started:")
        _err("    lkr set openai:prod")
        _err("    lkr set anthropic:main")
        return 0

    print(f"  {'Provider':<14} {'Name':<20} {'Kind':<10} Value")
    print(f"  {'-' * 60}")
    for entry in entries:
        print(f"  {entry.provider:<14} {entry.name:<20} {entry.kind:<10} {entry.masked_value}")
    print(f"\n  {len(entries)} key(s) stored")
    return 0


def _cmd_rm(store: KeyStore, args: argparse.Namespace) -> int:
    if not args.force and not _confirm(f"Remove key '{args.name}'?"):
        _err("Cancelled.")
        return 0
    store.delete(args.name)
    _err(f"Removed {args.name}")
    return 0


def _cmd_gen(store: KeyStore, args: argparse.Namespace) -> int:
    from lkr.template import check_gitignore, derive_output_path, generate

    template_path = Path(args.template)
    if not template_path.exists():
        raise TemplateError(f"Template file not found: {args.template}")

    output_path = Path(args.output) if args.output else derive_output_path(template_path)

    if output_path.exists() and not args.force:
        if not _confirm(f"Output file '{output_path}' already exists. Overwrite?"):
            _err("Cancelled.")
            return 0

    if check_gitignore(output_path) is False:
        _err(f"Warning: '{output_path}' is NOT in .gitignore. Generated files may contain secrets!")
        _err("  Consider adding it to .gitignore before committing.")

    result = generate(store, template_path, output_path)

    if result.resolved:
        _err("  Resolved from keychain:")
        for r in result.resolved:
            _err(f"    {r.placeholder:<24} <- {r.key_name}")
            if r.other_candidates:
                _err(f"      (also available: {', '.join(r.other_candidates)})")
    if result.unresolved:
        _err("  Kept as-is (no matching key):")
        for r in result.unresolved:
            _err(f"    {r.placeholder}")

    _err(
        f"\n  Generated: {output_path} "
        f"({len(result.resolved)} resolved, {len(result.unresolved)} unresolved)"
    )
    return 0


def _cmd_usage(store: KeyStore, args: argparse.Namespace) -> int:
    from lkr.usage import UsageCache, available_providers, fetch_all, format_cost

    providers = [args.provider] if args.provider else available_providers(store)
    if not providers:
        if args.json:
            return _print_json([])
        _err("No admin keys registered.\n")
        _err("  Register one to track usage:")
        _err("    lkr set openai:admin --kind admin")
        _err("    lkr set anthropic:admin --kind admin")
        return 0

    cache = UsageCache.from_config()
    try:
        batch = asyncio.run(fetch_all(store, providers, cache, refresh=args.refresh))
    except BatchError as e:
        if len(e.errors) == 1:
            raise next(iter(e.errors.values())) from None
        raise

    if args.json:
        payload = [r.model_dump(mode="json") for r in batch.reports.values()]
        payload += [{"provider": p, "error": str(e)} for p, e in batch.errors.items()]
        return _print_json(payload)

    for report in batch.reports.values():
        print(
            f"  {report.provider} ({report.period_start} to {report.period_end}): "
            f"{format_cost(report.total_cost_cents)} {report.currency.upper()}"
        )
        for item in report.line_items:
            print(f"    {item.description:<32} {format_cost(item.cost_cents):>10}")
    for provider, error in batch.errors.items():
        _err(f"  {provider}: {error}")
    return 0


def _print_json(payload: object) -> int:
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

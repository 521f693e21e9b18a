"""errorcloak CLI.

Subcommands:
  scrub     -> print text with sensitive fragments redacted
  scan      -> exit 1 when text contains sensitive fragments (lists matching patterns)
  render    -> render a synthetic error through a response formatter
  formats   -> list registered response formatters
  validate  -> check patterns and the default response format
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from errorcloak.config import CONFIG_DEFAULT, CloakConfig, ConfigError, load_config
from errorcloak.exceptions import FormatterNotFoundError
from errorcloak.logging import configure_logging
from errorcloak.manager import CloakManager
from errorcloak.observability import configure_telemetry
from errorcloak.patterns import invalid_patterns, matches, pattern_source
from errorcloak.policy import SanitizationPolicy
from errorcloak.registry import FormatterRegistry

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="errorcloak", description="Scrub sensitive data from error messages"
    )
    p.add_argument("--config", default=CONFIG_DEFAULT)
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Do not log original errors while rendering",
    )
    p.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    ps = sub.add_parser("scrub", help="Print text with sensitive fragments redacted")
    ps.add_argument("text", nargs="?", help="Text to scrub (default: stdin)")

    pn = sub.add_parser("scan", help="Exit 1 when text contains sensitive fragments")
    pn.add_argument("text", nargs="?", help="Text to scan (default: stdin)")

    pr = sub.add_parser("render", help="Render a synthetic error as a response")
    pr.add_argument("--message", required=True)
    pr.add_argument("--status", type=int, default=500)
    pr.add_argument("--format", dest="format_name", help="Formatter name (default: configured)")
    pr.add_argument("--trace", action="store_true", help="Include the redacted trace")

    sub.add_parser("formats", help="List registered response formatters")
    sub.add_parser("validate", help="Check patterns and the default response format")
    return p


def _load(args: argparse.Namespace) -> CloakConfig:
    path = Path(args.config)
    if not path.exists() and args.config == CONFIG_DEFAULT:
        return CloakConfig.defaults()
    return load_config(path)


def _read_text(args: argparse.Namespace) -> str:
    if args.text is not None:
        return str(args.text)
    return sys.stdin.read()


def _cmd_scrub(cfg: CloakConfig, args: argparse.Namespace) -> int:
    policy = SanitizationPolicy.from_config(cfg)
    print(policy.sanitize_message(_read_text(args)))
    return 0


def _cmd_scan(cfg: CloakConfig, args: argparse.Namespace) -> int:
    text = _read_text(args)
    hits = [pattern_source(p) for p in cfg.patterns if matches(text, p)]
    for source in hits:
        print(source)
    return 1 if hits else 0


def _cmd_render(cfg: CloakConfig, args: argparse.Namespace) -> int:
    if args.quiet:
        cfg.log_original = False
    manager = CloakManager.from_config(cfg)
    try:
        raise RuntimeError(args.message)
    except RuntimeError as exc:
        response = manager.to_response(
            exc,
            status=args.status,
            include_trace=args.trace,
            format_name=args.format_name,
        )
    print(response.json(indent=2))
    return 0


def _cmd_formats(cfg: CloakConfig, args: argparse.Namespace) -> int:
    registry = FormatterRegistry(cfg.custom_formatters, default_format=cfg.response_format)
    for name in registry.names():
        marker = "*" if name == registry.default_format else " "
        print(f"{marker} {name}")
    return 0


def _cmd_validate(cfg: CloakConfig, args: argparse.Namespace) -> int:
    problems = [f"pattern {src!r}: {err}" for src, err in invalid_patterns(cfg.patterns)]
    registry = FormatterRegistry(cfg.custom_formatters, default_format=cfg.response_format)
    if not registry.has(cfg.response_format):
        problems.append(f"default response format {cfg.response_format!r} is not registered")
    if cfg.identifier_template and "{message}" not in cfg.identifier_template:
        problems.append("error id template does not contain {message}")
    for problem in problems:
        print(problem, file=sys.stderr)
    if problems:
        return 1
    print(f"OK ({len(cfg.patterns)} patterns, format {cfg.response_format})")
    return 0


_COMMANDS = {
    "scrub": _cmd_scrub,
    "scan": _cmd_scan,
    "render": _cmd_render,
    "formats": _cmd_formats,
    "validate": _cmd_validate,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        cfg = _load(args)
    except ConfigError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 2
    configure_logging(
        json_logging=args.json_logs or cfg.logging_json_enabled, level=cfg.logging_level
    )
    if cfg.telemetry_enabled:
        configure_telemetry(
            service_name="errorcloak",
            exporter=cfg.telemetry_exporter,
            endpoint=cfg.telemetry_endpoint,
        )
    try:
        return _COMMANDS[args.cmd](cfg, args)
    except (ConfigError, FormatterNotFoundError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

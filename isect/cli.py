"""isect CLI — Command-line interface for the isect type checker.

Commands:
  isect check <file|dir>...           — Validate and link class declarations
  isect subtype <A> <B>               — Decide A <: B (optionally over --classes)
  isect tokens <file>                 — Dump the disambiguated token stream
  isect render <type>                 — Validate a type and print it back
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Optional

from isect import __version__
from isect.config import IsectConfig, load_config
from isect.disambiguate import tokenize_disambiguated
from isect.errors import CompileError, UnresolvableType
from isect.formatters import format_result
from isect.linker import check_source
from isect.oracle import HierarchyOracle, PermissiveOracle, UnresolvedPolicy
from isect.presentation import describe, parse_type, render
from isect.subtyping import check_subtype
from isect.validator import validate_type

logger = logging.getLogger(__name__)

_SOURCE_EXTENSIONS = (".php", ".isect")


def _load(args: argparse.Namespace) -> IsectConfig:
    target = getattr(args, "file", None) or "."
    if isinstance(target, list):
        target = target[0]
    start = target if os.path.isdir(target) else os.path.dirname(os.path.abspath(target))
    config = load_config(getattr(args, "config", None), start_dir=start)
    if getattr(args, "permissive", False):
        config.unresolved_policy = UnresolvedPolicy.PERMISSIVE
    if getattr(args, "smt", False):
        config.smt_cross_check = True
    if getattr(args, "output_format", None):
        config.format = args.output_format
    if config.verbose:
        logging.getLogger("isect").setLevel(logging.DEBUG)
    return config


def _read(path: str) -> Optional[str]:
    if not os.path.exists(path):
        print(json.dumps({"error": f"File not found: {path}"}))
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError as e:
        print(json.dumps({"error": f"Cannot decode {path} as UTF-8: {e.reason}"}))
        return None


def _collect_files(targets: list[str], config: IsectConfig) -> list[str]:
    files: list[str] = []
    for target in targets:
        if not os.path.isdir(target):
            files.append(target)
            continue
        for root, dirs, names in os.walk(target):
            dirs.sort()
            for name in sorted(names):
                path = os.path.join(root, name)
                rel = os.path.relpath(path, target)
                if not name.endswith(_SOURCE_EXTENSIONS):
                    continue
                if config.should_exclude(rel) or not config.should_include(rel):
                    continue
                files.append(path)
    return files


def cmd_check(args: argparse.Namespace) -> int:
    """Validate and link each file; exit 1 if any file has errors."""
    try:
        config = _load(args)
    except ValueError as e:
        print(json.dumps({"error": str(e)}))
        return 1

    failed = False
    reports: list[dict[str, Any]] = []
    for path in _collect_files(args.file, config):
        source = _read(path)
        if source is None:
            failed = True
            continue
        result = check_source(source, filename=path, config=config)
        if not result.ok:
            failed = True
        report = result.to_dict()
        if config.format == "json":
            report["file"] = path
            reports.append(report)
        else:
            print(format_result(report, config.format, path))

    if config.format == "json":
        print(json.dumps(reports[0] if len(reports) == 1 else reports, indent=2))
    return 1 if failed else 0


def _oracle_from(path: Optional[str], config: IsectConfig) -> Optional[HierarchyOracle]:
    if path is None:
        return HierarchyOracle()
    source = _read(path)
    if source is None:
        return None
    result = check_source(source, filename=path, config=config)
    if not result.ok:
        print(format_result(result.to_dict(), config.format, path))
        return None
    return result.oracle


def cmd_subtype(args: argparse.Namespace) -> int:
    """Decide ``A <: B`` over the classes of an optional declaration file."""
    try:
        config = _load(args)
        a = parse_type(args.sub)
        b = parse_type(args.sup)
    except (ValueError, CompileError) as e:
        print(e.to_json() if isinstance(e, CompileError) else json.dumps({"error": str(e)}))
        return 1

    oracle = _oracle_from(args.classes, config)
    if oracle is None:
        return 1
    resolve = oracle
    if config.unresolved_policy is UnresolvedPolicy.PERMISSIVE:
        resolve = PermissiveOracle(oracle)

    try:
        judgment = check_subtype(a, b, resolve)
    except UnresolvableType as exc:
        print(json.dumps(exc.to_error().to_dict(), indent=2))
        return 1

    out: dict[str, Any] = {
        "sub": render(a),
        "sup": render(b),
        "holds": judgment.holds,
    }
    if judgment.counterexample is not None:
        out["counterexample"] = render(judgment.counterexample)
    if config.smt_cross_check:
        from isect.smt import entails, witness

        checker = PermissiveOracle(oracle)
        out["smt"] = entails(a, b, checker)
        if not out["smt"]:
            out["witness"] = witness(a, b, checker)
        if out["smt"] != judgment.holds:
            logger.warning("engine and smt disagree on %s <: %s", a, b)
    print(json.dumps(out, indent=2))
    return 0 if judgment.holds else 1


def cmd_tokens(args: argparse.Namespace) -> int:
    """Emit the disambiguated token stream as JSON."""
    source = _read(args.file)
    if source is None:
        return 1
    try:
        tokens = tokenize_disambiguated(source, filename=args.file)
    except CompileError as e:
        print(e.to_json())
        return 1
    print(json.dumps([
        {"type": t.type.name, "value": t.value,
         "line": t.location.line, "column": t.location.column}
        for t in tokens
    ], indent=2))
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    """Validate a standalone type and print its rendering."""
    try:
        expr = parse_type(args.type)
    except CompileError as e:
        print(e.to_json())
        return 1
    diagnostics = validate_type(expr, symbol="<type>")
    errors = [d for d in diagnostics if d.is_error]
    if args.describe or errors:
        out: dict[str, Any] = describe(expr)
        if diagnostics:
            out["diagnostics"] = [d.to_dict() for d in diagnostics]
        print(json.dumps(out, indent=2))
    else:
        print(render(expr))
    return 1 if errors else 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="isect",
        description="isect — intersection types for a nominal class language",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # check
    p_check = subparsers.add_parser("check", help="Validate and link class declarations")
    p_check.add_argument("file", nargs="+", help="Source files or directories")
    p_check.add_argument("--config", help="Path to .isectrc.yml (default: search upwards)")
    p_check.add_argument("--output-format", dest="output_format",
                         choices=["pretty", "summary", "markdown", "json"],
                         help="Output format (default: from config, else pretty)")
    p_check.add_argument("--permissive", action="store_true",
                         help="Treat unresolvable class names as 'not a subtype'")
    p_check.add_argument("--smt", action="store_true",
                         help="Cross-check every subtype decision with z3")
    p_check.set_defaults(func=cmd_check)

    # subtype
    p_sub = subparsers.add_parser("subtype", help="Decide whether A <: B")
    p_sub.add_argument("sub", help="Candidate subtype, e.g. 'A&B'")
    p_sub.add_argument("sup", help="Candidate supertype, e.g. 'A'")
    p_sub.add_argument("--classes", help="Declaration file defining the class hierarchy")
    p_sub.add_argument("--config", help="Path to .isectrc.yml")
    p_sub.add_argument("--permissive", action="store_true",
                       help="Treat unresolvable class names as 'not a subtype'")
    p_sub.add_argument("--smt", action="store_true", help="Also decide with z3")
    p_sub.set_defaults(func=cmd_subtype)

    # tokens
    p_tokens = subparsers.add_parser("tokens", help="Dump the disambiguated token stream")
    p_tokens.add_argument("file", help="Source file")
    p_tokens.set_defaults(func=cmd_tokens)

    # render
    p_render = subparsers.add_parser("render", help="Validate and render a type")
    p_render.add_argument("type", help="Type expression, e.g. 'B&A'")
    p_render.add_argument("--describe", action="store_true", help="Print a JSON description")
    p_render.set_defaults(func=cmd_render)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()

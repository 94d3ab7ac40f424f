"""isect Output Formatters — Human-friendly terminal output.

Provides multiple output modes:
    pretty   — colored, severity icons, one block per file (default)
    summary  — one-line pass/fail per file
    markdown — for pasting into PRs / docs
    json     — machine-readable
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional


# ── ANSI color helpers ───────────────────────────────────────────────────

_NO_COLOR = os.environ.get("NO_COLOR") is not None or not sys.stdout.isatty()


def _c(code: str, text: str) -> str:
    if _NO_COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def red(t: str) -> str:
    return _c("31", t)


def yellow(t: str) -> str:
    return _c("33", t)


def green(t: str) -> str:
    return _c("32", t)


def cyan(t: str) -> str:
    return _c("36", t)


def bold(t: str) -> str:
    return _c("1", t)


def dim(t: str) -> str:
    return _c("2", t)


# ── Severity icons ──────────────────────────────────────────────────────

ICON_ERROR = red("✖")
ICON_WARNING = yellow("▲")
ICON_OK = green("✔")


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n != 1 else ''}"


# ── Pretty formatter (default) ──────────────────────────────────────────

def format_pretty(result: Dict[str, Any], filepath: Optional[str] = None) -> str:
    """Format a link result with colors and icons."""
    lines: List[str] = []

    verified = result.get("verified", False)
    errors = result.get("errors", [])
    warnings = result.get("warnings", [])

    status_icon = ICON_OK if verified else ICON_ERROR
    lines.append(f"\n {status_icon}  {bold(filepath or '<stdin>')}")

    for err in errors:
        loc = _format_location(err)
        msg = err.get("message", "Unknown error")
        lines.append(f"   {ICON_ERROR}  {loc}{red(msg)}")
        symbol = err.get("details", {}).get("base_symbol", "")
        if symbol:
            lines.append(f"      {dim('overrides')} {cyan(symbol)}")

    for warn in warnings:
        loc = _format_location(warn)
        msg = warn.get("message", "Warning")
        lines.append(f"   {ICON_WARNING}  {loc}{yellow(msg)}")

    rejected = result.get("rejected", [])
    if rejected:
        lines.append(f"   {dim('rejected:')} {', '.join(rejected)}")

    if verified and not errors:
        classes = result.get("classes", [])
        lines.append(f"\n   {green('No issues found.')} {dim(_plural(len(classes), 'class') + ' linked')}\n")
    else:
        parts = []
        if errors:
            parts.append(red(_plural(len(errors), "error")))
        if warnings:
            parts.append(yellow(_plural(len(warnings), "warning")))
        lines.append(f"\n   {' · '.join(parts)}\n")

    return "\n".join(lines)


# ── Summary formatter ───────────────────────────────────────────────────

def format_summary(result: Dict[str, Any], filepath: Optional[str] = None) -> str:
    """One-line pass/fail summary."""
    name = filepath or "<stdin>"
    if result.get("verified", False):
        return f"{ICON_OK}  {name}  —  {green('PASS')}"
    parts = []
    errors = result.get("errors", [])
    warnings = result.get("warnings", [])
    if errors:
        parts.append(_plural(len(errors), "error"))
    if warnings:
        parts.append(_plural(len(warnings), "warning"))
    return f"{ICON_ERROR}  {name}  —  {red('FAIL')}  ({', '.join(parts)})"


# ── Markdown formatter ──────────────────────────────────────────────────

def format_markdown(result: Dict[str, Any], filepath: Optional[str] = None) -> str:
    """Format results as Markdown for PR comments / docs."""
    lines: List[str] = []
    errors = result.get("errors", [])
    warnings = result.get("warnings", [])

    status = "✅ PASS" if result.get("verified", False) else "❌ FAIL"
    heading = f"## isect: {status}"
    if filepath:
        heading += f" — `{filepath}`"
    lines.append(heading)
    lines.append("")

    for title, items in (("Errors", errors), ("Warnings", warnings)):
        if not items:
            continue
        lines.append(f"### {title} ({len(items)})")
        lines.append("")
        lines.append("| # | Location | Kind | Message |")
        lines.append("|---|----------|------|---------|")
        for i, item in enumerate(items, 1):
            msg = item.get("message", "").replace("|", "\\|")
            lines.append(f"| {i} | {_md_location(item)} | {item.get('kind', '')} | {msg} |")
        lines.append("")

    if not errors and not warnings:
        lines.append("> No issues found.")
    else:
        lines.append(f"> **{len(errors)} error(s)** and **{len(warnings)} warning(s)** detected.")
    return "\n".join(lines)


# ── Dispatch ────────────────────────────────────────────────────────────

def format_result(result: Dict[str, Any], fmt: str = "pretty",
                  filepath: Optional[str] = None) -> str:
    """Format a result dict.

    Args:
        fmt: One of "pretty", "summary", "markdown", "json".
    """
    if fmt == "summary":
        return format_summary(result, filepath)
    elif fmt == "markdown":
        return format_markdown(result, filepath)
    elif fmt == "json":
        return json.dumps(result, indent=2)
    return format_pretty(result, filepath)


# ── Helpers ─────────────────────────────────────────────────────────────

def _format_location(err: Dict[str, Any]) -> str:
    loc = err.get("location", {})
    line = loc.get("line")
    col = loc.get("column")
    if line is not None:
        loc_str = f"L{line}"
        if col is not None:
            loc_str += f":{col}"
        return dim(f"{loc_str}  ")
    return ""


def _md_location(err: Dict[str, Any]) -> str:
    loc = err.get("location", {})
    line = loc.get("line")
    if line is None:
        return "—"
    col = loc.get("column")
    return f"`Line {line}:{col}`" if col is not None else f"`Line {line}`"

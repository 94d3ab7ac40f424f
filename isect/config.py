"""isect Configuration — Project-level .isectrc.yml support.

Loads configuration from .isectrc.yml (or .isectrc.yaml, .isectrc.json)
in the project root. Allows teams to configure:
  - What an unresolvable class name means during variance checks
  - Whether ``callable`` in an intersection is flagged
  - The z3 cross-check of every subtype decision
  - Severity threshold, output format, file include/exclude patterns

Example .isectrc.yml:
    unresolved_policy: strict    # or "permissive"
    callable_lint: true
    smt_cross_check: false
    severity: warning
    format: pretty
    include:
      - "src/**/*.php"
    exclude:
      - "vendor/**"
"""

from __future__ import annotations

import fnmatch
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from isect.errors import Severity
from isect.oracle import UnresolvedPolicy


_SEVERITIES = tuple(s.value for s in Severity)
_FORMATS = ("pretty", "summary", "markdown", "json")


@dataclass
class IsectConfig:
    """Project-level isect configuration."""
    unresolved_policy: UnresolvedPolicy = UnresolvedPolicy.STRICT
    callable_lint: bool = True
    smt_cross_check: bool = False
    # Minimum severity: "error", "warning", "info"
    severity: str = "warning"
    format: str = "pretty"
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    verbose: bool = False

    def should_include(self, filepath: str) -> bool:
        """Check if a file should be included based on patterns."""
        if not self.include:
            return True
        return any(fnmatch.fnmatch(filepath, p) for p in self.include)

    def should_exclude(self, filepath: str) -> bool:
        """Check if a file should be excluded based on patterns."""
        if not self.exclude:
            return False
        return any(fnmatch.fnmatch(filepath, p) for p in self.exclude)

    def reports(self, severity: str) -> bool:
        """Whether diagnostics of ``severity`` pass the configured threshold."""
        return Severity(severity).rank >= Severity(self.severity).rank


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".isectrc.yml",
    ".isectrc.yaml",
    ".isectrc.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> IsectConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults. A file that exists but
    cannot be parsed raises ValueError.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return IsectConfig()

    with open(path, "r") as f:
        content = f.read()

    if path.endswith(".json"):
        try:
            data = json.loads(content) if content.strip() else {}
        except json.JSONDecodeError as e:
            raise ValueError(f"{path}: invalid JSON: {e}") from e
    else:
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    return _dict_to_config(data)


def _dict_to_config(data: Dict[str, Any]) -> IsectConfig:
    """Convert a parsed dict to IsectConfig."""
    config = IsectConfig()

    if "unresolved_policy" in data:
        try:
            config.unresolved_policy = UnresolvedPolicy(str(data["unresolved_policy"]).lower())
        except ValueError:
            raise ValueError(
                f"unresolved_policy must be 'strict' or 'permissive', got {data['unresolved_policy']!r}"
            ) from None
    if "callable_lint" in data:
        config.callable_lint = bool(data["callable_lint"])
    if "smt_cross_check" in data:
        config.smt_cross_check = bool(data["smt_cross_check"])
    if "severity" in data:
        config.severity = str(data["severity"]).lower()
        if config.severity not in _SEVERITIES:
            raise ValueError(f"severity must be one of {_SEVERITIES}, got {config.severity!r}")
    if "format" in data:
        config.format = str(data["format"]).lower()
        if config.format not in _FORMATS:
            raise ValueError(f"format must be one of {_FORMATS}, got {config.format!r}")
    if "include" in data and isinstance(data["include"], list):
        config.include = [str(p) for p in data["include"]]
    if "exclude" in data and isinstance(data["exclude"], list):
        config.exclude = [str(p) for p in data["exclude"]]
    if "verbose" in data:
        config.verbose = bool(data["verbose"])

    return config

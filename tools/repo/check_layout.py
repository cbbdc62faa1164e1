"""Validate root-level repository layout against policy."""

from __future__ import annotations

import argparse
from pathlib import Path

ROOT_ALLOWED = {
    ".git",
    ".github",
    ".gitignore",
    ".env",
    ".env.example",
    ".layout-ignore",
    "DESIGN.md",
    "LICENSE",
    "README.md",
    "apps",
    "cli.py",
    "contracts",
    "docs",
    "infra",
    "migrations",
    "pipeline",
    "pyproject.toml",
    "tests",
    "tools",
    "version.py",
}

ROOT_IGNORED_PREFIXES = (
    ".hypothesis",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    ".venv",
    "__pycache__",
    "build",
    "dist",
)

ROOT_IGNORED_SUFFIXES = (".egg-info",)

# Per-checkout list of extra root names (one per line, "#" comments).
LOCAL_IGNORE_FILE = ".layout-ignore"


def _ignored(name: str) -> bool:
    return name.startswith(ROOT_IGNORED_PREFIXES) or name.endswith(ROOT_IGNORED_SUFFIXES)


def load_local_ignores(repo_root: Path) -> set[str]:
    """Names listed in the checkout's ignore file; empty when it is absent."""
    path = repo_root / LOCAL_IGNORE_FILE
    if not path.is_file():
        return set()
    names: set[str] = set()
    for line in path.read_text(encoding="utf-8").splitlines():
        name = line.split("#", 1)[0].strip()
        if name:
            names.add(name)
    return names


def list_unexpected_root_entries(repo_root: Path) -> list[str]:
    """Return sorted root entries that violate the structure policy."""
    allowed = ROOT_ALLOWED | load_local_ignores(repo_root)
    return sorted(
        entry.name
        for entry in repo_root.iterdir()
        if not _ignored(entry.name) and entry.name not in allowed
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check root layout policy.")
    parser.add_argument(
        "--repo-root",
        default=str(Path(__file__).resolve().parents[2]),
        help="Repository root path (default: auto-detected).",
    )
    args = parser.parse_args(argv)

    violations = list_unexpected_root_entries(Path(args.repo_root).resolve())
    if not violations:
        print("OK: repository root layout matches policy.")
        return 0

    print("ERROR: unexpected root-level entries found:")
    for name in violations:
        print(f"- {name}")
    print("Move these under apps/, pipeline/, tools/, or another owned subtree.")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

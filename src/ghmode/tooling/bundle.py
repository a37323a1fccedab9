"""Build the GitHub Mode zip bundle.

The bundle holds every GitHub Mode component and can be extracted into a
fork to install or update it. Output name: `gitclaw-YYYY-MM-DD-HH-MM.zip`.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import datetime, timezone
import os
from pathlib import Path
import sys
from typing import Callable
import zipfile

from ghmode.config import bundle_defaults, bundle_name_prefix
from ghmode.exceptions import UsageError

DEFAULT_NAME_PREFIX = "gitclaw"
MANIFEST_REL_PATH = Path("runtime/github/runtime-manifest.json")
COMPRESSION_LEVEL = 9

PrintFn = Callable[[str], None]


@dataclass(frozen=True)
class ComponentGroup:
    id: str
    label: str
    description: str
    # Paths relative to repo root; a trailing "/" marks a directory.
    paths: tuple[str, ...]


COMPONENT_GROUPS: tuple[ComponentGroup, ...] = (
    ComponentGroup(
        id="runtime-contracts",
        label="Runtime Contracts",
        description=(
            "Machine-readable runtime contracts, schemas, and policies that define "
            "GitHub Mode behavior."
        ),
        paths=("runtime/github/",),
    ),
    ComponentGroup(
        id="workflows",
        label="GitHub Actions Workflows",
        description=(
            "GitHub Mode CI/CD workflows for contract validation, commands, and "
            "policy enforcement."
        ),
        paths=(".github/workflows/github-mode-contracts.yml",),
    ),
    ComponentGroup(
        id="docs",
        label="GitHub Mode Documentation",
        description=(
            "Architecture docs, ADRs, security analysis, planning, and implementation guides."
        ),
        paths=("docs/github-mode/",),
    ),
    ComponentGroup(
        id="validation-scripts",
        label="Validation Scripts",
        description="Contract validation and upstream-additive-change guard scripts.",
        paths=(
            "scripts/validate-github-runtime-contracts.ts",
            "scripts/check-upstream-additions-only.ts",
            "scripts/build-github-mode-bundle.ts",
        ),
    ),
    ComponentGroup(
        id="tests",
        label="Test Coverage",
        description="Test suites for contract validation and upstream-additions guard.",
        paths=(
            "test/validate-github-runtime-contracts.test.ts",
            "test/check-upstream-additions-only.test.ts",
            "test/build-github-mode-bundle.test.ts",
        ),
    ),
    ComponentGroup(
        id="entrypoints",
        label="Repository Entrypoints",
        description="Top-level GitHub Mode README files for fork orientation.",
        paths=(".GITHUB-MODE-ACTIVE.md", ".GITHUB-MODE-README.md"),
    ),
)


@dataclass(frozen=True)
class BundleEntry:
    relative_path: str
    absolute_path: Path
    group_id: str


@dataclass(frozen=True)
class BuildResult:
    output_path: Path | None
    file_count: int
    entries: tuple[BundleEntry, ...]
    size_bytes: int


@dataclass(frozen=True)
class BundleOptions:
    repo_root: Path
    output_dir: Path
    dry_run: bool


def _walk_files(directory: Path) -> list[Path]:
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        for filename in sorted(filenames):
            files.append(Path(dirpath) / filename)
    return files


def collect_bundle_entries(
    repo_root: Path,
    groups: tuple[ComponentGroup, ...] = COMPONENT_GROUPS,
) -> list[BundleEntry]:
    entries: list[BundleEntry] = []
    for group in groups:
        for rel in group.paths:
            absolute_path = repo_root / rel
            if not absolute_path.exists():
                continue
            if absolute_path.is_dir():
                for file_path in _walk_files(absolute_path):
                    entries.append(
                        BundleEntry(
                            relative_path=file_path.relative_to(repo_root).as_posix(),
                            absolute_path=file_path,
                            group_id=group.id,
                        )
                    )
            else:
                entries.append(
                    BundleEntry(relative_path=rel, absolute_path=absolute_path, group_id=group.id)
                )
    return entries


def generate_bundle_name(
    when: datetime | None = None,
    *,
    prefix: str = DEFAULT_NAME_PREFIX,
) -> str:
    moment = (when or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{prefix}-{moment:%Y-%m-%d-%H-%M}.zip"


def build_bundle(
    *,
    repo_root: Path,
    output_dir: Path,
    dry_run: bool,
    bundle_name: str | None = None,
) -> BuildResult:
    entries = tuple(collect_bundle_entries(repo_root))
    if dry_run:
        return BuildResult(output_path=None, file_count=len(entries), entries=entries, size_bytes=0)

    name = bundle_name or generate_bundle_name(
        prefix=bundle_name_prefix(bundle_defaults(root=repo_root), DEFAULT_NAME_PREFIX)
    )
    output_path = output_dir / name
    with zipfile.ZipFile(
        output_path,
        "w",
        compression=zipfile.ZIP_DEFLATED,
        compresslevel=COMPRESSION_LEVEL,
    ) as archive:
        for entry in entries:
            archive.write(entry.absolute_path, arcname=entry.relative_path)
    return BuildResult(
        output_path=output_path,
        file_count=len(entries),
        entries=entries,
        size_bytes=output_path.stat().st_size,
    )


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    kb = size / 1024
    if kb < 1024:
        return f"{kb:.1f} KB"
    return f"{kb / 1024:.1f} MB"


def resolve_options(
    *,
    output_dir: str | None,
    dry_run: bool,
    repo_root: Path | None = None,
) -> BundleOptions:
    root = repo_root or Path.cwd()
    resolved_output = Path(output_dir).resolve() if output_dir else root
    if not resolved_output.exists():
        raise UsageError(f"Output directory does not exist: {resolved_output}")
    return BundleOptions(repo_root=root, output_dir=resolved_output, dry_run=dry_run)


def _print_report(result: BuildResult, *, dry_run: bool, print_out: PrintFn) -> None:
    print_out("Components included:\n")
    for group in COMPONENT_GROUPS:
        count = sum(1 for entry in result.entries if entry.group_id == group.id)
        print_out(f"  ✅ {group.label} ({count} files)")
        print_out(f"     {group.description}")
    print_out("")

    print_out(f"Files ({result.file_count} total):\n")
    for entry in result.entries:
        print_out(f"  {entry.relative_path}")
    print_out("")

    if dry_run or result.output_path is None:
        print_out(f"Would bundle {result.file_count} files.\n")
        return
    print_out(f"Bundle: {result.output_path}")
    print_out(f"Size:   {format_bytes(result.size_bytes)}")
    print_out(f"Files:  {result.file_count}\n")
    print_out("Install into your fork:\n")
    print_out(f"  unzip -o {result.output_path.name} -d /path/to/your/fork\n")
    print_out("Then:")
    print_out("  cd /path/to/your/fork")
    print_out("  pnpm install")
    print_out("  pnpm contracts:github:validate")
    print_out("  git add -A && git commit -m 'chore: install GitHub Mode components'")
    print_out("  git push\n")
    print_out("See docs/github-mode/fork-installation.md for the full guide.")


def _default_print_err(message: str) -> None:
    print(message, file=sys.stderr)


def run_bundle(
    options: BundleOptions,
    *,
    print_out: PrintFn = print,
    print_err: PrintFn = _default_print_err,
) -> int:
    print_out("GitHub Mode Bundle Builder\n")
    if options.dry_run:
        print_out("  [DRY RUN] No files will be created.\n")

    if not (options.repo_root / MANIFEST_REL_PATH).exists():
        print_err(f"❌ Not an OpenClaw repo root (missing {MANIFEST_REL_PATH.as_posix()}).")
        print_err("   Run this command from the OpenClaw repository root.\n")
        return 1

    result = build_bundle(
        repo_root=options.repo_root,
        output_dir=options.output_dir,
        dry_run=options.dry_run,
    )
    _print_report(result, dry_run=options.dry_run, print_out=print_out)
    print_out("\nDone.\n")
    return 0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build a timestamped zip bundle of all GitHub Mode components.",
    )
    parser.add_argument("output", nargs="?", help="Output directory (positional form).")
    parser.add_argument("--output-dir", help="Directory for the output zip (default: repo root).")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List files without creating the zip.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        options = resolve_options(
            output_dir=args.output_dir or args.output,
            dry_run=bool(args.dry_run),
        )
    except UsageError as exc:
        _default_print_err(str(exc))
        return 1
    return run_bundle(options)


if __name__ == "__main__":
    raise SystemExit(main())

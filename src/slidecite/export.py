"""PDF and PPTX export orchestration for Slidev decks.

ExportConfig

`pdf` (`bool`)
: Export the deck to PDF. Requires ``playwright-chromium``.

`pdf_outline` (`bool`)
: Embed an outline (table of contents) in the exported PDF.

`pptx` (`bool`)
: Export the deck to PowerPoint.

`wait` (`int`)
: Milliseconds to wait before capturing each slide.

`output_dir` (`str`)
: Export directory relative to the project root.

`filename` (`str | None`)
: Base filename without extension. Defaults to the repository name.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
import json
import logging
import os
from pathlib import Path
import subprocess
import tomllib

from pydantic import BaseModel, ConfigDict, ValidationError

from .exceptions import ExportError


logger = logging.getLogger(__name__)

CONFIG_FILENAME = "slidecite-export.toml"
FALLBACK_NAME = "slidev-presentation"

Runner = Callable[[Sequence[str]], int]


class ExportConfig(BaseModel):
    """Formats and options used when exporting the deck."""

    model_config = ConfigDict(extra="forbid")

    pdf: bool = True
    pdf_outline: bool = True
    pptx: bool = True
    wait: int = 1000
    output_dir: str = "exports"
    filename: str | None = None


def load_export_config(root: Path, path: Path | None = None) -> ExportConfig:
    """Load ``slidecite-export.toml`` from ``root`` when present."""
    config_path = path or root / CONFIG_FILENAME
    if not config_path.exists():
        return ExportConfig()
    try:
        with config_path.open("rb") as handle:
            payload = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Could not load %s: %s", config_path, exc)
        return ExportConfig()
    section = payload.get("export", payload)
    try:
        return ExportConfig.model_validate(section)
    except ValidationError as exc:
        raise ExportError(f"Invalid export configuration in '{config_path}': {exc}") from exc


def resolve_base_filename(
    config: ExportConfig,
    root: Path,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the export filename from config, CI metadata, or ``package.json``."""
    if config.filename:
        return config.filename
    env = os.environ if environ is None else environ
    repository = env.get("GITHUB_REPOSITORY", "")
    if "/" in repository:
        name = repository.split("/", 1)[1]
        if name:
            return name
    try:
        package = json.loads((root / "package.json").read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not determine repository name: %s", exc)
        return FALLBACK_NAME
    name = package.get("name") if isinstance(package, dict) else None
    return str(name) if name else FALLBACK_NAME


def build_export_commands(
    config: ExportConfig,
    output_dir: Path,
    base_filename: str,
) -> list[tuple[str, list[str]]]:
    """Return ``(format, argv)`` pairs for every enabled export format."""
    commands: list[tuple[str, list[str]]] = []
    if config.pdf:
        argv = [
            "npx",
            "slidev",
            "export",
            "--output",
            str(output_dir / f"{base_filename}.pdf"),
            "--wait",
            str(config.wait),
        ]
        if config.pdf_outline:
            argv.append("--with-toc")
        commands.append(("pdf", argv))
    if config.pptx:
        commands.append(
            (
                "pptx",
                [
                    "npx",
                    "slidev",
                    "export",
                    "--format",
                    "pptx",
                    "--output",
                    str(output_dir / f"{base_filename}.pptx"),
                    "--wait",
                    str(config.wait),
                ],
            )
        )
    return commands


def _run(argv: Sequence[str], *, cwd: Path) -> int:
    try:
        completed = subprocess.run(list(argv), cwd=cwd, check=False)
    except OSError as exc:
        logger.error("Failed to run %s: %s", argv[0], exc)
        return 127
    return completed.returncode


def run_export(
    root: Path,
    config: ExportConfig | None = None,
    *,
    runner: Runner | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Path]:
    """Export the deck and return the files produced, keyed by format."""
    config = config or load_export_config(root)
    run: Runner = runner or (lambda argv: _run(argv, cwd=root))
    base_filename = resolve_base_filename(config, root, environ)
    output_dir = root / config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    if (config.pdf or config.pptx) and run(["npx", "playwright-chromium", "--version"]) != 0:
        logger.info("Installing playwright-chromium for PDF/PPTX export...")
        if run(["npm", "install", "--no-save", "playwright-chromium"]) != 0:
            logger.error("Failed to install playwright-chromium. PDF/PPTX export will be skipped.")
            config = config.model_copy(update={"pdf": False, "pptx": False})

    produced: dict[str, Path] = {}
    for fmt, argv in build_export_commands(config, output_dir, base_filename):
        logger.info("Exporting %s...", fmt.upper())
        if run(argv) != 0:
            logger.error("Failed to export %s.", fmt.upper())
            continue
        target = output_dir / f"{base_filename}.{fmt}"
        logger.info("%s exported to %s", fmt.upper(), target)
        produced[fmt] = target
    return produced


__all__ = [
    "CONFIG_FILENAME",
    "ExportConfig",
    "build_export_commands",
    "load_export_config",
    "resolve_base_filename",
    "run_export",
]

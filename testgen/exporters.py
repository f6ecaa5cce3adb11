# File: testgen/exporters.py
"""
testgen - Test File Exporter
=============================

Responsible for:
    1. Optionally cleaning the output directory.
    2. Writing generated test classes atomically (write-to-temp then rename).
    3. Refusing to replace hand-edited tests unless overwriting is enabled.
    4. Producing an export manifest with checksums.

Every file is written independently: if one write fails, the files already
written stay in place and the failure is recorded in the result.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

from testgen.models import GenerationConfig
from testgen.utils import Timer, clean_directory, count_lines, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("testgen.exporters")

MANIFEST_FILENAME: str = "testgen-manifest.json"


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Manifest of all exported files, serialisable to JSON."""

    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "relative_path": f.relative_path,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Final result returned by ``TestExporter.export()``."""

    success: bool
    manifest: ExportManifest
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# TestExporter
# ---------------------------------------------------------------------------


class TestExporter:
    """
    Writes generated test files below one output directory.

    Usage::

        exporter = TestExporter(config, output_dir=Path("tests/Feature"))
        result = exporter.export(generated_files)
        print(result.manifest.to_json())

    Not thread-safe: use one exporter per output directory.
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        config: GenerationConfig,
        output_dir: Path,
        *,
        clean_before_export: bool = False,
        atomic_writes: bool = True,
        generate_manifest: bool = True,
        dry_run: bool = False,
    ) -> None:
        """
        Args:
            config: Generation configuration (``overwrite_existing`` is honoured).
            output_dir: Root directory for output files.
            clean_before_export: Wipe the output directory first.
            atomic_writes: Use write-to-temp + rename.
            generate_manifest: Also write ``testgen-manifest.json``.
            dry_run: Build records without touching the filesystem.
        """
        self._config: GenerationConfig = config
        self._output_dir: Path = output_dir.resolve()
        self._clean_before_export: bool = clean_before_export
        self._atomic_writes: bool = atomic_writes
        self._generate_manifest: bool = generate_manifest
        self._dry_run: bool = dry_run

        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "TestExporter initialised: output_dir=%s, atomic=%s, dry_run=%s.",
            self._output_dir,
            self._atomic_writes,
            self._dry_run,
        )

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, generated_files: Dict[str, str]) -> ExportResult:
        """
        Export generated files.

        Args:
            generated_files: Mapping of relative_path → file_content.

        Returns:
            ExportResult with success flag, manifest, and error details.
        """
        with Timer("export") as timer:
            try:
                self._pre_export_cleanup()
                self._write_generated_files(generated_files)

                if self._generate_manifest and not self._dry_run:
                    self._write_manifest_file()

            except OSError as exc:
                error_msg: str = f"Fatal export error: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg, exc_info=True)

        manifest: ExportManifest = self._build_manifest()
        success: bool = len(self._errors) == 0

        result: ExportResult = ExportResult(
            success=success,
            manifest=manifest,
            errors=tuple(self._errors),
            warnings=tuple(self._warnings),
            elapsed_seconds=timer.elapsed,
        )

        if success:
            logger.info(
                "Export completed: %d files, %d bytes, %.3fs%s.",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
                " (dry run)" if self._dry_run else "",
            )
        else:
            logger.error(
                "Export completed with %d error(s) in %.3fs.",
                len(self._errors),
                timer.elapsed,
            )

        return result

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _pre_export_cleanup(self) -> None:
        if not self._clean_before_export or self._dry_run:
            return
        logger.info("Cleaning output directory: %s", self._output_dir)
        try:
            clean_directory(self._output_dir)
        except OSError as exc:
            warning_msg: str = f"Could not clean {self._output_dir}: {exc}"
            self._warnings.append(warning_msg)
            logger.warning(warning_msg)

    def _write_generated_files(self, generated_files: Dict[str, str]) -> None:
        for rel_path, content in generated_files.items():
            full_path: Path = self._output_dir / rel_path

            if full_path.exists() and not self._config.overwrite_existing:
                error_msg: str = (
                    f"Refusing to overwrite existing file {rel_path}; "
                    f"enable overwrite_existing to replace it."
                )
                self._errors.append(error_msg)
                logger.error(error_msg)
                continue

            try:
                self._file_records.append(
                    self._write_single_file(full_path, content, rel_path)
                )
            except OSError as exc:
                error_msg = f"Failed to write {rel_path}: {type(exc).__name__}: {exc}"
                self._errors.append(error_msg)
                logger.error(error_msg)

        logger.info(
            "Wrote %d generated files to %s.",
            len(self._file_records),
            self._output_dir,
        )

    def _write_single_file(
        self,
        full_path: Path,
        content: str,
        rel_path: str,
    ) -> FileRecord:
        if self._dry_run:
            size_bytes: int = len(content.encode("utf-8"))
        else:
            size_bytes = write_file(full_path, content, atomic=self._atomic_writes)

        return FileRecord(
            relative_path=rel_path,
            absolute_path=str(full_path),
            size_bytes=size_bytes,
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )

    def _build_manifest(self) -> ExportManifest:
        import testgen

        return ExportManifest(
            generator_version=testgen.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            total_files=len(self._file_records),
            total_bytes=sum(r.size_bytes for r in self._file_records),
            total_lines=sum(r.line_count for r in self._file_records),
            files=list(self._file_records),
        )

    def _write_manifest_file(self) -> None:
        manifest_path: Path = self._output_dir / MANIFEST_FILENAME
        try:
            write_file(manifest_path, self._build_manifest().to_json(), atomic=self._atomic_writes)
            logger.debug("Wrote manifest to %s.", manifest_path)
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MANIFEST_FILENAME",
    "TestExporter",
    "ExportManifest",
    "ExportResult",
    "FileRecord",
]

logger.debug("testgen.exporters loaded.")

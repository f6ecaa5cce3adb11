# File: testgen/generator.py
"""
testgen - Generation Pipeline (Orchestrator)
=============================================

Connects every phase:

    Definition Input → Validation → Test Rendering → File Export

Workflow::

    1. Load the definition from a YAML/JSON file (or accept in-memory models).
    2. Parse into ``TestSuiteDefinition`` + ``GenerationConfig``.
    3. Run the validation pipeline.
    4. Render one test class per controller with ``TestTemplateGenerator``.
    5. Hand the files to ``TestExporter``.
    6. Return a ``GenerationReport`` with metrics and status.

Error handling:
    - Validation errors are collected and surfaced, not swallowed.
    - Rendering errors are isolated per controller.
    - Export errors are recorded in the report.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from testgen.exporters import ExportManifest, ExportResult, TestExporter
from testgen.models import GenerationConfig, TestSuiteDefinition
from testgen.templates import TestTemplateGenerator
from testgen.utils import Timer, count_lines
from testgen.validators import ValidationResult, validate_full

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("testgen.generator")

_SUITE_KEYS: Tuple[str, ...] = ("suite", "controllers", "test_suite")
_CONFIG_KEYS: Tuple[str, ...] = ("config", "generation_config")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``TestSuiteGenerator``.

    Contains timing information, file counts, validation results,
    and any errors/warnings encountered.
    """

    success: bool = False
    output_directory: str = ""
    dry_run: bool = False

    # Metrics
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_controllers_processed: int = 0
    total_routes_processed: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    skipped_controllers: List[str] = field(default_factory=list)

    # Rendered content, keyed by relative path
    files: Dict[str, str] = field(default_factory=dict)
    manifest: Optional[ExportManifest] = None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  testgen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}{' (dry run)' if self.dry_run else ''}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Controllers:      {self.total_controllers_processed}")
        lines.append(f"  Routes:           {self.total_routes_processed}")
        lines.append(f"  Files generated:  {self.total_files}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections: List[Tuple[str, List[str], str]] = [
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Input Errors", self.input_errors, "✗"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
            ("Skipped Controllers", self.skipped_controllers, "⊘"),
        ]
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(f"{'─'*60}")
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Definition loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        data: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a JSON object at top level, got {type(data).__name__}."
        )
    return data


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_definition_file(path: Path) -> Dict[str, Any]:
    """
    Load a definition file (JSON or YAML), dispatching on the extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Definition file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Definition path is not a file: {path}")

    suffix: str = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    if suffix == ".json":
        return _load_json_file(path)

    # YAML is a superset of JSON
    logger.info("Unknown extension '%s' — parsing as YAML.", suffix)
    return _load_yaml_file(path)


def apply_config_overrides(
    raw: Dict[str, Any],
    overrides: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """Return a copy of ``raw`` with ``overrides`` merged over its config section."""
    if not overrides:
        return raw
    merged_raw: Dict[str, Any] = dict(raw)
    config_key: str = next((k for k in _CONFIG_KEYS if k in raw), "config")
    merged: Dict[str, Any] = dict(raw.get(config_key) or {})
    merged.update(overrides)
    merged_raw[config_key] = merged
    return merged_raw


def parse_raw_definition(
    raw: Dict[str, Any],
) -> Tuple[TestSuiteDefinition, GenerationConfig]:
    """
    Parse a raw dictionary (from JSON/YAML) into validated models.

    Expected top-level keys:
        - "controllers" (list), or "suite" / "test_suite" (mapping)
        - "config" or "generation_config" (optional)

    Raises:
        ValueError: If required keys are missing or validation fails.
    """
    suite_data: Optional[Dict[str, Any]] = None
    for key in _SUITE_KEYS:
        if key in raw:
            val: Any = raw[key]
            if isinstance(val, list):
                suite_data = {"controllers": val}
            elif isinstance(val, dict):
                suite_data = val
            break

    if suite_data is None:
        raise ValueError(
            "Cannot find a controller list in input. "
            f"Expected one of the top-level keys: {', '.join(_SUITE_KEYS)}."
        )

    config_data: Optional[Dict[str, Any]] = None
    for key in _CONFIG_KEYS:
        if key in raw:
            config_data = raw[key] or {}
            break

    if config_data is None:
        logger.info("No generation config found in input — using defaults.")
        config_data = {}

    try:
        suite: TestSuiteDefinition = TestSuiteDefinition.model_validate(suite_data)
    except PydanticValidationError as exc:
        raise ValueError(f"Definition validation failed: {exc}") from exc

    try:
        config: GenerationConfig = GenerationConfig.model_validate(config_data)
    except PydanticValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc

    return suite, config


# ---------------------------------------------------------------------------
# TestSuiteGenerator — orchestrator
# ---------------------------------------------------------------------------


class TestSuiteGenerator:
    """
    Pipeline orchestrator.

    Usage::

        generator = TestSuiteGenerator()

        report = generator.generate_from_file(
            definition_path=Path("routes.yaml"),
            output_dir=Path("tests/Feature"),
        )

        report = generator.generate(suite, config, Path("tests/Feature"))

        print(report.summary())

    Reusable: every call builds its own template generator and resolvers.
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        *,
        strict_validation: bool = True,
        fail_on_warnings: bool = False,
        clean_output: bool = False,
        dry_run: bool = False,
    ) -> None:
        """
        Args:
            strict_validation: Abort on any validation error.
            fail_on_warnings: Treat validation warnings as errors.
            clean_output: Wipe the output directory before writing.
            dry_run: Render everything but write nothing.
        """
        self._strict_validation: bool = strict_validation
        self._fail_on_warnings: bool = fail_on_warnings
        self._clean_output: bool = clean_output
        self._dry_run: bool = dry_run

        logger.debug(
            "TestSuiteGenerator initialised: strict=%s, fail_on_warnings=%s, "
            "clean=%s, dry_run=%s.",
            strict_validation,
            fail_on_warnings,
            clean_output,
            dry_run,
        )

    # -----------------------------------------------------------------
    # Public
    # -----------------------------------------------------------------

    def generate_from_file(
        self,
        definition_path: Path,
        output_dir: Optional[Path] = None,
        *,
        config_overrides: Optional[Dict[str, Any]] = None,
    ) -> GenerationReport:
        """
        Full pipeline: load file → validate → render → export.

        Args:
            definition_path: Path to JSON/YAML definition file.
            output_dir: Output directory; defaults to ``config.output_dir``.
            config_overrides: Values merged over the file's config section.
        """
        report: GenerationReport = GenerationReport(dry_run=self._dry_run)

        load_error: Optional[Exception] = None
        with Timer("load_definition") as t_load:
            try:
                raw_data: Dict[str, Any] = load_definition_file(definition_path)
            except (FileNotFoundError, ValueError) as exc:
                load_error = exc

        if load_error is not None:
            report.input_errors.append(str(load_error))
            report.step_metrics.append(GenerationStepMetric(
                step_name="Load Definition File",
                success=False,
                elapsed_seconds=t_load.elapsed,
                detail=str(load_error),
            ))
            return self._finalise_report(report, t_load.elapsed)

        logger.info(
            "Loaded definition file: %s (%d top-level keys).",
            definition_path,
            len(raw_data),
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Definition File",
            success=True,
            elapsed_seconds=t_load.elapsed,
            detail=f"from {definition_path.name}",
        ))

        parse_error: Optional[ValueError] = None
        with Timer("parse_definition") as t_parse:
            try:
                suite, config = parse_raw_definition(
                    apply_config_overrides(raw_data, config_overrides)
                )
                suite.source_file = str(definition_path)
                suite.parsed_at = datetime.now()
            except ValueError as exc:
                parse_error = exc

        if parse_error is not None:
            report.input_errors.append(str(parse_error))
            report.step_metrics.append(GenerationStepMetric(
                step_name="Parse Definition",
                success=False,
                elapsed_seconds=t_parse.elapsed,
                detail=str(parse_error).splitlines()[0],
            ))
            return self._finalise_report(report, t_load.elapsed + t_parse.elapsed)

        logger.info(
            "Parsed definition: %d controllers, %d routes.",
            len(suite.controllers),
            suite.route_count,
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Parse Definition",
            success=True,
            elapsed_seconds=t_parse.elapsed,
            detail=f"{len(suite.controllers)} controllers parsed",
        ))

        target: Path = Path(output_dir) if output_dir else Path(config.output_dir)
        return self._run_pipeline(suite, config, target, report)

    def generate(
        self,
        suite: TestSuiteDefinition,
        config: GenerationConfig,
        output_dir: Optional[Path] = None,
    ) -> GenerationReport:
        """Full pipeline from pre-parsed models."""
        report: GenerationReport = GenerationReport(dry_run=self._dry_run)
        target: Path = Path(output_dir) if output_dir else Path(config.output_dir)
        return self._run_pipeline(suite, config, target, report)

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        suite: TestSuiteDefinition,
        config: GenerationConfig,
        output_dir: Path,
        report: GenerationReport,
    ) -> GenerationReport:
        pipeline_start: float = time.perf_counter()
        report.output_directory = str(output_dir.resolve())

        validation_ok: bool = self._step_validate(suite, config, report)
        if not validation_ok:
            if self._strict_validation:
                return self._finalise_report(
                    report, time.perf_counter() - pipeline_start
                )
            # Non-strict: keep going, errors are reported as warnings
            logger.warning(
                "Continuing despite %d validation error(s) (strict mode off).",
                len(report.validation_errors),
            )
            report.validation_warnings.extend(report.validation_errors)
            report.validation_errors.clear()

        generated_files: Dict[str, str] = self._step_generate(suite, config, report)
        report.files = generated_files

        if not generated_files:
            report.generation_errors.append(
                "No files were generated — aborting export."
            )
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        self._step_export(generated_files, config, output_dir, report)

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    def _step_validate(
        self,
        suite: TestSuiteDefinition,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> bool:
        """Returns True if validation passed (warnings allowed unless fail_on_warnings)."""
        with Timer("validation") as t:
            result: ValidationResult = validate_full(suite, config)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.has_warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        passed: bool = result.is_valid and not (
            self._fail_on_warnings and result.has_warnings
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Definition",
            success=passed,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        if result.has_errors:
            for err in result.errors:
                logger.error("  ✗ %s", err)
            return False

        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)

        if self._fail_on_warnings and result.has_warnings:
            report.validation_errors.append(
                f"{result.warning_count} warning(s) treated as errors."
            )
            return False

        return True

    def _step_generate(
        self,
        suite: TestSuiteDefinition,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> Dict[str, str]:
        """Render every controller; a failing controller is skipped and recorded."""
        generated_files: Dict[str, str] = {}
        template_gen: TestTemplateGenerator = TestTemplateGenerator(config)

        with Timer("code_generation") as t:
            for controller in suite.controllers:
                try:
                    generated_files[f"{controller.test_class_name}.php"] = (
                        template_gen.generate_test_class(controller)
                    )
                except (KeyError, ValueError, TypeError) as exc:
                    error_msg: str = (
                        f"Failed to render {controller.name}: "
                        f"{type(exc).__name__}: {exc}"
                    )
                    report.generation_errors.append(error_msg)
                    report.skipped_controllers.append(controller.name)
                    logger.error(error_msg, exc_info=True)
                    continue
                report.total_controllers_processed += 1
                report.total_routes_processed += len(controller.routes)

        total_lines: int = sum(count_lines(c) for c in generated_files.values())
        detail_str: str = (
            f"{len(generated_files)} files, ~{total_lines:,} lines, "
            f"{report.total_routes_processed} routes"
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Render Tests",
            success=not report.generation_errors,
            elapsed_seconds=t.elapsed,
            detail=detail_str,
        ))
        logger.info("Rendering complete: %s in %.3fs.", detail_str, t.elapsed)

        return generated_files

    def _step_export(
        self,
        generated_files: Dict[str, str],
        config: GenerationConfig,
        output_dir: Path,
        report: GenerationReport,
    ) -> None:
        exporter: TestExporter = TestExporter(
            config=config,
            output_dir=output_dir,
            clean_before_export=self._clean_output,
            atomic_writes=True,
            generate_manifest=True,
            dry_run=self._dry_run,
        )
        export_result: ExportResult = exporter.export(generated_files)

        report.total_files = export_result.manifest.total_files
        report.total_bytes = export_result.manifest.total_bytes
        report.total_lines = export_result.manifest.total_lines
        report.export_errors.extend(export_result.errors)
        report.manifest = export_result.manifest

        report.step_metrics.append(GenerationStepMetric(
            step_name="Export to Filesystem" if not self._dry_run else "Export (dry run)",
            success=export_result.success,
            elapsed_seconds=export_result.elapsed_seconds,
            detail=(
                f"{export_result.manifest.total_files} files, "
                f"{export_result.manifest.total_bytes:,} bytes"
            ),
        ))

    def _finalise_report(
        self,
        report: GenerationReport,
        total_elapsed: float,
    ) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        report.success = not (
            report.validation_errors
            or report.input_errors
            or report.generation_errors
            or report.export_errors
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TestSuiteGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "apply_config_overrides",
    "load_definition_file",
    "parse_raw_definition",
]

logger.debug("testgen.generator loaded.")

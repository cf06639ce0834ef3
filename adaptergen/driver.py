"""Fan-out of view-models across backends and writing of adapter files."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .backends import AdapterBackend, GenerationError, discover_backends
from .diagnostics import Diagnostic
from .logging import get_logger
from .models import Platform, ViewModelMetadata

ALL_PLATFORMS = "both"


class NoViewModelsError(GenerationError):
    """Raised when a run is started without any view-models."""


class AdapterStatus(str, Enum):
    CLEAN = "clean"
    DIAGNOSTICS = "diagnostics"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class AdapterOutcome:
    """What happened to one (view-model, platform) pair."""

    view_model: str
    platform: Platform
    status: AdapterStatus
    path: Optional[Path] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "view_model": self.view_model,
            "platform": self.platform.value,
            "status": self.status.value,
            "path": str(self.path) if self.path is not None else None,
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
            "error": self.error,
        }


@dataclass
class GenerationSummary:
    """Aggregate result of a driver run."""

    total_view_models: int
    platforms: List[Platform]
    outcomes: List[AdapterOutcome] = field(default_factory=list)
    dry_run: bool = False

    @property
    def generated(self) -> Dict[str, int]:
        counts = {platform.value: 0 for platform in self.platforms}
        for outcome in self.outcomes:
            if outcome.status in (AdapterStatus.CLEAN, AdapterStatus.DIAGNOSTICS):
                counts[outcome.platform.value] += 1
        return counts

    def count(self, status: AdapterStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def failures(self) -> List[AdapterOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is AdapterStatus.FAILED]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def outcome_for(self, view_model: str, platform: Platform) -> Optional[AdapterOutcome]:
        for outcome in self.outcomes:
            if outcome.view_model == view_model and outcome.platform is platform:
                return outcome
        return None

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_view_models": self.total_view_models,
            "platforms": [platform.value for platform in self.platforms],
            "generated": self.generated,
            "clean": self.count(AdapterStatus.CLEAN),
            "with_diagnostics": self.count(AdapterStatus.DIAGNOSTICS),
            "failures": len(self.failures),
            "skipped": self.count(AdapterStatus.SKIPPED),
            "dry_run": self.dry_run,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def parse_platforms(identifiers: Iterable[str | Platform]) -> List[Platform]:
    """Expand platform identifiers (``android``, ``ios``, ``both``) preserving order."""
    platforms: List[Platform] = []
    for identifier in identifiers:
        if isinstance(identifier, str) and identifier.strip().lower() == ALL_PLATFORMS:
            candidates = list(Platform)
        else:
            candidates = [Platform.parse(identifier)]
        for platform in candidates:
            if platform not in platforms:
                platforms.append(platform)
    if not platforms:
        raise ValueError("At least one platform must be requested")
    return platforms


class EmissionDriver:
    """Generates adapters for every (view-model, platform) pair and writes them to disk."""

    def __init__(
        self,
        output_root: Path,
        backends: Optional[Iterable[AdapterBackend]] = None,
        *,
        workers: int = 1,
        dry_run: bool = False,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.output_root = Path(output_root)
        resolved = list(backends) if backends is not None else discover_backends()
        self.backends: Dict[Platform, AdapterBackend] = {backend.platform: backend for backend in resolved}
        self.workers = workers
        self.dry_run = dry_run
        self.logger = get_logger("driver")

    def run(
        self,
        view_models: Sequence[ViewModelMetadata],
        platforms: Iterable[str | Platform] = (ALL_PLATFORMS,),
    ) -> GenerationSummary:
        view_models = list(view_models)
        if not view_models:
            raise NoViewModelsError("No view-models were provided; nothing to generate")

        targets = parse_platforms(platforms)
        missing = [platform.value for platform in targets if platform not in self.backends]
        if missing:
            raise ValueError(f"No backend registered for: {', '.join(missing)}")

        self.logger.info(
            "Generating adapters for %d view-model(s) on %s",
            len(view_models),
            ", ".join(platform.value for platform in targets),
        )

        # Every stale file is gone before the first adapter is written.
        directories: Dict[Platform, Path] = {}
        for platform in targets:
            directories[platform] = self._prepare_directory(self.backends[platform])

        summary = GenerationSummary(
            total_view_models=len(view_models), platforms=targets, dry_run=self.dry_run
        )
        jobs: List[Tuple[ViewModelMetadata, AdapterBackend, Path]] = []
        slots: List[Optional[AdapterOutcome]] = []
        claimed: Dict[Tuple[Platform, str], str] = {}
        for view_model in view_models:
            for platform in targets:
                backend = self.backends[platform]
                if view_model.is_excluded_for(platform):
                    self.logger.info("Skipping %s for %s (excluded)", view_model.name, platform.value)
                    slots.append(AdapterOutcome(view_model.name, platform, AdapterStatus.SKIPPED))
                    continue
                file_name = backend.file_name_for(view_model)
                owner = claimed.get((platform, file_name))
                if owner is not None:
                    message = f"{file_name} is already produced by {owner}"
                    self.logger.error("Cannot generate %s for %s: %s", view_model.name, platform.value, message)
                    slots.append(
                        AdapterOutcome(view_model.name, platform, AdapterStatus.FAILED, error=message)
                    )
                    continue
                claimed[(platform, file_name)] = view_model.name
                jobs.append((view_model, backend, directories[platform]))
                slots.append(None)

        results = self._execute(jobs)
        pending = iter(results)
        summary.outcomes = [slot if slot is not None else next(pending) for slot in slots]

        generated = ", ".join(f"{name}={count}" for name, count in summary.generated.items())
        self.logger.info(
            "Generated %s; %d clean, %d with diagnostics, %d failed%s",
            generated,
            summary.count(AdapterStatus.CLEAN),
            summary.count(AdapterStatus.DIAGNOSTICS),
            len(summary.failures),
            " (dry run)" if self.dry_run else "",
        )
        return summary

    def _execute(self, jobs: List[Tuple[ViewModelMetadata, AdapterBackend, Path]]) -> List[AdapterOutcome]:
        if self.workers == 1 or len(jobs) <= 1:
            return [self._generate_one(*job) for job in jobs]
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="adaptergen") as pool:
            futures = [pool.submit(self._generate_one, *job) for job in jobs]
            return [future.result() for future in futures]

    def _prepare_directory(self, backend: AdapterBackend) -> Path:
        directory = self.output_root / backend.output_dir_name
        if self.dry_run:
            return directory
        directory.mkdir(parents=True, exist_ok=True)
        for stale in sorted(directory.glob(backend.file_pattern)):
            stale.unlink()
            self.logger.debug("Removed stale adapter %s", stale)
        return directory

    def _generate_one(
        self, view_model: ViewModelMetadata, backend: AdapterBackend, directory: Path
    ) -> AdapterOutcome:
        platform = backend.platform
        try:
            adapter = backend.generate(view_model)
            path = directory / adapter.file_name
            if not self.dry_run:
                path.write_text(adapter.text, encoding="utf-8")
        except Exception as exc:
            self._log_exception(f"Failed to generate {platform.value} adapter for {view_model.name}", exc)
            return AdapterOutcome(view_model.name, platform, AdapterStatus.FAILED, error=str(exc))

        for diagnostic in adapter.diagnostics:
            self.logger.warning("%s: %s", view_model.name, diagnostic.format())
        self.logger.info("%s -> %s", view_model.name, path)
        status = AdapterStatus.DIAGNOSTICS if adapter.diagnostics else AdapterStatus.CLEAN
        return AdapterOutcome(
            view_model.name,
            platform,
            status,
            path=path,
            diagnostics=list(adapter.diagnostics),
        )

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


__all__ = [
    "ALL_PLATFORMS",
    "AdapterOutcome",
    "AdapterStatus",
    "EmissionDriver",
    "GenerationSummary",
    "NoViewModelsError",
    "parse_platforms",
]

"""Pipeline orchestrator — runs ordered stages with retries, timeouts and fallbacks.

Each stage attempt is raced against a timeout; a timed-out, raising or failed
attempt is retried after a linear backoff (attempt x base_delay). When a stage
exhausts its attempts, a fallback handler registered under the stage name may
substitute its output; otherwise the run stops and reports the failing stage.

After the last stage, quality checkers run (advisory only), then the output is
filtered by quality threshold and truncated. execute() never raises.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable

from venuescout.config import settings
from venuescout.models.processing import ProcessingResult
from venuescout.services.errors import StageTimeoutError
from venuescout.services.quality_controller import QualityCheckResult

logger = logging.getLogger(__name__)

FallbackHandler = Callable[[Any, str], Awaitable[Any]]
QualityChecker = Callable[[Any], QualityCheckResult]


# ---------- Retry combinator ----------


@dataclass
class RetryOutcome:
    value: Any = None
    error: str | None = None
    attempts: int = 0

    @property
    def success(self) -> bool:
        return self.error is None


async def retry_with_backoff(
    operation: Callable[[], Awaitable[Any]],
    max_attempts: int,
    base_delay: float,
    timeout: float,
    name: str = "operation",
) -> RetryOutcome:
    """Run `operation` up to `max_attempts` times.

    Each attempt is bounded by `timeout` seconds; an abandoned attempt is
    cancelled and its result discarded. A ProcessingResult in FAILED state
    counts as a failed attempt.
    """
    last_error = "no attempts made"
    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            value = await asyncio.wait_for(operation(), timeout)
            if isinstance(value, ProcessingResult) and value.is_failed:
                last_error = "; ".join(value.errors) or "stage reported failure"
            else:
                return RetryOutcome(value=value, attempts=attempt)
        except asyncio.TimeoutError:
            last_error = str(StageTimeoutError(name, timeout))
        except Exception as e:
            last_error = str(e) or e.__class__.__name__

        logger.warning(f"{name} attempt {attempt}/{attempts} failed: {last_error}")
        if attempt < attempts:
            await asyncio.sleep(attempt * base_delay)

    return RetryOutcome(error=last_error, attempts=attempts)


# ---------- Metrics ----------


@dataclass
class RunMetrics:
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    average_processing_time_ms: float = 0.0
    last_run_at: float | None = None

    def record(self, success: bool, elapsed_ms: float) -> None:
        self.total_runs += 1
        if success:
            self.successful_runs += 1
        else:
            self.failed_runs += 1
        n = self.total_runs
        self.average_processing_time_ms = round((self.average_processing_time_ms * (n - 1) + elapsed_ms) / n, 2)
        self.last_run_at = time.time()

    def to_dict(self) -> dict:
        data = asdict(self)
        data["success_rate"] = round(self.successful_runs / self.total_runs * 100, 2) if self.total_runs else 0.0
        return data


# ---------- Stages ----------


class PipelineStage:
    """Base class for pipeline stages. Subclasses implement execute()."""

    name: str = "stage"

    def __init__(self, name: str | None = None, timeout: float | None = None, retry_attempts: int | None = None):
        if name:
            self.name = name
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.metrics = RunMetrics()

    async def execute(self, data: Any) -> Any:
        raise NotImplementedError

    async def process(self, data: Any) -> ProcessingResult:
        result = ProcessingResult().start()
        started = time.monotonic()
        try:
            output = await self.execute(data)
            result.set_success(output)
        except asyncio.CancelledError:
            self.metrics.record(False, (time.monotonic() - started) * 1000)
            raise
        except Exception as e:
            logger.warning(f"Stage {self.name} raised: {e}")
            result.set_error(str(e) or e.__class__.__name__)
        result.set_processing_time(started)
        self.metrics.record(result.is_success, result.processing_time_ms)
        return result


class FunctionStage(PipelineStage):
    """Adapts a plain async callable into a stage."""

    def __init__(self, name: str, fn: Callable[[Any], Awaitable[Any]], **kwargs):
        super().__init__(name=name, **kwargs)
        self._fn = fn

    async def execute(self, data: Any) -> Any:
        return await self._fn(data)


# ---------- Pipeline ----------


@dataclass
class PipelineOptions:
    timeout: float = settings.pipeline_timeout_seconds
    retry_attempts: int = settings.pipeline_retry_attempts
    retry_base_delay: float = settings.pipeline_retry_base_delay_seconds
    quality_threshold: float = settings.quality_threshold
    max_recommendations: int = settings.max_recommendations
    enable_quality_checks: bool = True


@dataclass
class PipelineResult:
    success: bool
    data: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _item_score(item: Any) -> float:
    score = getattr(item, "score", None)
    if score is None:
        score = getattr(item, "confidence_score", 0.0)
    try:
        return float(score)
    except (TypeError, ValueError):
        return 0.0


class RecommendationPipeline:
    def __init__(self, options: PipelineOptions | None = None):
        self.options = options or PipelineOptions()
        self.stages: list[PipelineStage] = []
        self.fallback_handlers: dict[str, FallbackHandler] = {}
        self.quality_checkers: list[QualityChecker] = []
        self.metrics = RunMetrics()

    def add_stage(self, stage: PipelineStage) -> "RecommendationPipeline":
        self.stages.append(stage)
        return self

    def add_fallback_handler(self, stage_name: str, handler: FallbackHandler) -> "RecommendationPipeline":
        self.fallback_handlers[stage_name] = handler
        return self

    def add_quality_checker(self, checker: QualityChecker) -> "RecommendationPipeline":
        self.quality_checkers.append(checker)
        return self

    async def execute(self, data: Any) -> PipelineResult:
        run_id = uuid.uuid4().hex[:12]
        started = time.monotonic()
        metadata: dict[str, Any] = {"run_id": run_id, "stages": {}, "fallbacks_used": []}

        try:
            result = await self._run(data, metadata)
        except Exception as e:
            logger.exception(f"Pipeline run {run_id} crashed")
            result = PipelineResult(success=False, error=str(e), metadata={**metadata, "failed_at": "pipeline"})

        elapsed_ms = round((time.monotonic() - started) * 1000, 2)
        result.metadata["processing_time_ms"] = elapsed_ms
        self.metrics.record(result.success, elapsed_ms)
        if result.success:
            logger.info(f"Pipeline run {run_id} completed in {elapsed_ms}ms")
        else:
            logger.error(f"Pipeline run {run_id} failed at {result.metadata.get('failed_at')}: {result.error}")
        return result

    async def _run(self, data: Any, metadata: dict) -> PipelineResult:
        current = data
        for stage in self.stages:
            outcome = await retry_with_backoff(
                lambda s=stage, d=current: s.process(d),
                max_attempts=stage.retry_attempts or self.options.retry_attempts,
                base_delay=self.options.retry_base_delay,
                timeout=stage.timeout or self.options.timeout,
                name=stage.name,
            )
            if outcome.success:
                stage_result: ProcessingResult = outcome.value
                metadata["stages"][stage.name] = {**stage_result.to_dict(), "attempts": outcome.attempts}
                current = stage_result.data
                continue

            metadata["stages"][stage.name] = {"status": "failed", "error": outcome.error, "attempts": outcome.attempts}
            handler = self.fallback_handlers.get(stage.name)
            error = outcome.error
            if handler is not None:
                try:
                    current = await handler(current, outcome.error)
                    metadata["fallbacks_used"].append(stage.name)
                    metadata["stages"][stage.name]["status"] = "fallback"
                    logger.info(f"Stage {stage.name} recovered via fallback handler")
                    continue
                except Exception as e:
                    error = f"{outcome.error}; fallback failed: {e}"

            return PipelineResult(
                success=False,
                data=None,
                error=error,
                metadata={**metadata, "failed_at": stage.name, "attempts": outcome.attempts},
            )

        if isinstance(current, list):
            if self.options.enable_quality_checks and self.quality_checkers:
                metadata["quality_checks"] = self._run_quality_checks(current)
            before = len(current)
            current = [i for i in current if _item_score(i) >= self.options.quality_threshold]
            current = current[: self.options.max_recommendations]
            metadata["filtered_out"] = before - len(current)

        return PipelineResult(success=True, data=current, metadata=metadata)

    def _run_quality_checks(self, items: list) -> list[dict]:
        results = []
        for checker in self.quality_checkers:
            try:
                outcome = checker(items)
                results.append(outcome.to_dict())
                if not outcome.passed:
                    logger.info(f"Quality check {outcome.name} did not pass: {outcome.message}")
            except Exception as e:
                name = getattr(checker, "__name__", "checker")
                logger.warning(f"Quality checker {name} raised: {e}")
                results.append({"name": name, "passed": False, "message": str(e), "details": {}})
        return results

    def get_metrics(self) -> dict:
        return {
            "overall": self.metrics.to_dict(),
            "stages": {s.name: s.metrics.to_dict() for s in self.stages},
        }

    def reset_metrics(self) -> None:
        self.metrics = RunMetrics()
        for stage in self.stages:
            stage.metrics = RunMetrics()

    def get_pipeline_info(self) -> dict:
        return {
            "stages": [s.name for s in self.stages],
            "fallback_handlers": sorted(self.fallback_handlers),
            "quality_checkers": [getattr(c, "__name__", "checker") for c in self.quality_checkers],
            "options": asdict(self.options),
        }


class PipelineBuilder:
    """Fluent construction helper.

    Usage:
        pipeline = (
            PipelineBuilder()
            .with_options(retry_attempts=3)
            .add_stage(CollectStage())
            .add_fallback("collect", handler)
            .build()
        )
    """

    def __init__(self):
        self._options = PipelineOptions()
        self._stages: list[PipelineStage] = []
        self._fallbacks: dict[str, FallbackHandler] = {}
        self._checkers: list[QualityChecker] = []

    def with_options(self, **overrides) -> "PipelineBuilder":
        for key, value in overrides.items():
            if not hasattr(self._options, key):
                raise ValueError(f"Unknown pipeline option: {key}")
            setattr(self._options, key, value)
        return self

    def add_stage(self, stage: PipelineStage) -> "PipelineBuilder":
        self._stages.append(stage)
        return self

    def add_fallback(self, stage_name: str, handler: FallbackHandler) -> "PipelineBuilder":
        self._fallbacks[stage_name] = handler
        return self

    def add_quality_checker(self, checker: QualityChecker) -> "PipelineBuilder":
        self._checkers.append(checker)
        return self

    def build(self) -> RecommendationPipeline:
        pipeline = RecommendationPipeline(self._options)
        for stage in self._stages:
            pipeline.add_stage(stage)
        for name, handler in self._fallbacks.items():
            pipeline.add_fallback_handler(name, handler)
        for checker in self._checkers:
            pipeline.add_quality_checker(checker)
        return pipeline

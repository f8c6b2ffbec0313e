# multiverse/execution/executor.py
"""
Pipeline executor.

Runs one resolved pipeline against the source dataset:

    filter -> reliability -> preprocess -> model -> postprocess

The shared dataset is never mutated; filtering copies the kept rows into a
pipeline-local frame that later stages work on. Any stage failure is caught
here and returned as a failed ResultRecord, so a batch always yields one
record per pipeline.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import lru_cache
from typing import Any, Dict, Optional
import logging
import time

import numpy as np
import pandas as pd
from scipy import stats

from multiverse.errors import ModelTimeoutError, PipelineExecutionError
from multiverse.execution.backends import ModelBackend, get_backend
from multiverse.execution.records import ResultRecord, Status
from multiverse.expansion.masks import combined_mask
from multiverse.expansion.pipeline import ResolvedModel, ResolvedPipeline, Stage
from multiverse.monitoring.error_logging import ErrorComponent, ErrorLogger
from multiverse.postprocessing.functions import POSTPROCESS_FUNCTIONS, cronbach_alpha

logger = logging.getLogger(__name__)


@lru_cache(maxsize=2048)
def _compile(code: str, stage: str):
    try:
        return compile(code, f"<{stage}>", "eval")
    except SyntaxError as exc:
        raise PipelineExecutionError(stage, f"Invalid {stage} code '{code}': {exc.msg}") from exc


def _to_python(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


class PipelineExecutor:
    """
    Executes resolved pipelines one at a time.

    Args:
        backend: Model backend (default: statsmodels).
        model_timeout: Wall-clock budget in seconds for a single model fit.
        namespace: Extra names exposed to preprocess/postprocess code.
    """

    def __init__(
        self,
        backend: Optional[ModelBackend] = None,
        model_timeout: Optional[float] = None,
        namespace: Optional[Dict[str, Any]] = None,
    ) -> None:
        if model_timeout is not None and model_timeout <= 0:
            raise ValueError("model_timeout must be > 0")
        self.backend = backend or get_backend()
        self.model_timeout = model_timeout
        self.namespace = dict(namespace or {})
        self.errors = ErrorLogger(component=ErrorComponent.EXECUTOR)

    # ------------------------------------------------------------------

    def run(self, pipeline: ResolvedPipeline, dataset: pd.DataFrame) -> ResultRecord:
        """
        Run every stage of ``pipeline`` on ``dataset``.

        Returns:
            ResultRecord with status success, or failed with the stage,
            reason and message of the first error.
        """
        start = time.time()
        stage = Stage.FILTER
        n_rows: Optional[int] = None
        reliabilities: Dict[str, Dict[str, Any]] = {}

        try:
            mask = combined_mask(dataset, pipeline.filters)
            data = dataset.loc[mask].copy()
            n_rows = len(data)

            stage = Stage.RELIABILITY
            reliabilities = self._reliabilities(pipeline, data)

            stage = Stage.PREPROCESS
            data = self._preprocess(pipeline, data)

            stage = Stage.MODEL
            fitted = self._fit(pipeline.model, data) if pipeline.model else None

            stage = Stage.POSTPROCESS
            outputs = self._postprocess(pipeline, fitted, data)

        except PipelineExecutionError as exc:
            return self._failed(pipeline, exc.stage, exc.reason, exc.message, n_rows, reliabilities, start)
        except Exception as exc:
            message = f"{type(exc).__name__}: {exc}"
            return self._failed(pipeline, stage.value, "exception", message, n_rows, reliabilities, start)

        duration = time.time() - start
        logger.debug(f"Pipeline {pipeline.decision_id} succeeded on {n_rows} rows in {duration:.3f}s")
        return ResultRecord(
            decision_id=pipeline.decision_id,
            status=Status.SUCCESS,
            decisions=pipeline.decisions(),
            n_rows=n_rows,
            model=fitted,
            postprocess=outputs,
            reliabilities=reliabilities,
            duration_sec=duration,
            backend=self.backend,
        )

    # ------------------------------------------------------------------

    def _failed(self, pipeline, stage, reason, message, n_rows, reliabilities, start) -> ResultRecord:
        logger.debug(f"Pipeline {pipeline.decision_id} failed at {stage}: {message}")
        return ResultRecord(
            decision_id=pipeline.decision_id,
            status=Status.FAILED,
            decisions=pipeline.decisions(),
            n_rows=n_rows,
            reliabilities=reliabilities,
            failed_stage=stage,
            reason=reason,
            error=message,
            duration_sec=time.time() - start,
            backend=self.backend,
        )

    def _reliabilities(self, pipeline: ResolvedPipeline, data: pd.DataFrame) -> Dict[str, Dict[str, Any]]:
        """
        Cronbach's alpha per reliability entry. A failing entry reports
        ``alpha=None`` with its ``error``; it never fails the pipeline.
        """
        results = {}
        for reliability in pipeline.reliabilities:
            items = list(reliability.items)
            entry: Dict[str, Any] = {"alpha": None, "n_items": len(items), "n_obs": None, "items": items, "error": None}
            missing = [c for c in items if c not in data.columns]
            try:
                if missing:
                    raise KeyError(f"items missing: {missing}")
                frame = data[items]
                entry["n_obs"] = int(len(frame.dropna()))
                entry["alpha"] = cronbach_alpha(frame)
            except Exception as exc:
                entry["error"] = f"{type(exc).__name__}: {exc}"
                self.errors.log_error(
                    f"Reliability '{reliability.name}' could not be computed",
                    exception=exc,
                    context={"decision_id": pipeline.decision_id},
                    severity="debug",
                )
            results[reliability.name] = entry
        return results

    def _preprocess(self, pipeline: ResolvedPipeline, data: pd.DataFrame) -> pd.DataFrame:
        for step in pipeline.preprocess:
            scope = {"data": data, "np": np, "pd": pd, **self.namespace}
            result = eval(_compile(step.code, Stage.PREPROCESS.value), scope)
            if not isinstance(result, pd.DataFrame):
                raise PipelineExecutionError(
                    Stage.PREPROCESS.value,
                    f"Preprocess step '{step.name}' returned {type(result).__name__}, expected DataFrame",
                    reason="invalid_output",
                )
            data = result
        return data

    def _fit(self, model: ResolvedModel, data: pd.DataFrame) -> Any:
        def _call() -> Any:
            return self.backend.fit(
                data, model.formula, model.method, model.model_kwargs, model.fit_kwargs
            )

        if self.model_timeout is None:
            return _call()

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="model-fit")
        try:
            future = pool.submit(_call)
            return future.result(timeout=self.model_timeout)
        except FutureTimeoutError as exc:
            raise ModelTimeoutError(self.model_timeout) from exc
        finally:
            # A timed-out fit keeps running in its thread; do not wait for it.
            pool.shutdown(wait=False, cancel_futures=True)

    def _postprocess(self, pipeline: ResolvedPipeline, fitted: Any, data: pd.DataFrame) -> Dict[str, Any]:
        outputs: Dict[str, Any] = {}
        for step in pipeline.postprocess:
            scope = {
                "model": fitted,
                "data": data,
                "np": np,
                "pd": pd,
                "stats": stats,
                **POSTPROCESS_FUNCTIONS,
                **self.namespace,
            }
            outputs[step.name] = _to_python(eval(_compile(step.code, Stage.POSTPROCESS.value), scope))
        return outputs


def run_pipeline(
    pipeline: ResolvedPipeline,
    dataset: pd.DataFrame,
    backend: Optional[ModelBackend] = None,
    model_timeout: Optional[float] = None,
) -> ResultRecord:
    """Run a single resolved pipeline with a one-off executor."""
    return PipelineExecutor(backend=backend, model_timeout=model_timeout).run(pipeline, dataset)

# multiverse/execution/runner.py
"""
Batch runner for an expanded grid.

Pipelines are pulled lazily from the grid in chunks and handed to a thread
pool. Each worker runs its chunk through a PipelineExecutor; the runner
collects records as chunks complete and returns them sorted by decision_id.
At most ``2 * n_workers`` chunks are in flight, so the grid is never
materialised in full.
"""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional
import logging
import threading
import time

import pandas as pd

from multiverse.execution.backends import ModelBackend, get_backend
from multiverse.execution.executor import PipelineExecutor
from multiverse.execution.records import ResultRecord, Status
from multiverse.expansion.expander import ExpandedGrid
from multiverse.expansion.pipeline import ResolvedPipeline
from multiverse.monitoring.error_logging import ErrorComponent, ErrorLogger, FailureReason
from multiverse.utils.config_loader import ExecutionConfig

logger = logging.getLogger(__name__)


def _cancelled(pipeline: ResolvedPipeline) -> ResultRecord:
    return ResultRecord(
        decision_id=pipeline.decision_id,
        status=Status.CANCELLED,
        decisions=pipeline.decisions(),
        reason=FailureReason.CANCELLED.value,
        error="Batch cancelled before this pipeline ran.",
    )


def _run_chunk(
    executor: PipelineExecutor,
    chunk: List[ResolvedPipeline],
    dataset: pd.DataFrame,
    cancel_event: threading.Event,
) -> List[ResultRecord]:
    records = []
    for pipeline in chunk:
        if cancel_event.is_set():
            records.append(_cancelled(pipeline))
        else:
            records.append(executor.run(pipeline, dataset))
    return records


def run_multiverse(
    grid: ExpandedGrid,
    dataset: Optional[pd.DataFrame] = None,
    config: Optional[ExecutionConfig] = None,
    n_workers: Optional[int] = None,
    model_timeout: Optional[float] = None,
    chunk_size: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    backend: Optional[ModelBackend] = None,
    error_log: Optional[str] = None,
) -> List[ResultRecord]:
    """
    Run every pipeline of ``grid`` and return one record per pipeline.

    Explicit keyword arguments override the matching ``config`` fields.

    Args:
        grid: Expanded grid to run.
        dataset: Source data (defaults to the blueprint's dataset).
        config: Execution settings (workers, timeout, chunk size, backend).
        n_workers: Worker threads.
        model_timeout: Per-fit wall-clock budget in seconds.
        chunk_size: Pipelines per unit of work.
        cancel_event: Set it to stop the batch between pipelines; pipelines
            that have not started are returned as ``cancelled``.
        backend: Model backend instance.
        error_log: Optional JSONL path for failure records.

    Returns:
        List[ResultRecord]: sorted by decision_id, ``len == len(grid)``.
    """
    config = config or ExecutionConfig()
    n_workers = n_workers if n_workers is not None else config.n_workers
    model_timeout = model_timeout if model_timeout is not None else config.model_timeout_sec
    chunk_size = chunk_size if chunk_size is not None else config.chunk_size
    if n_workers < 1:
        raise ValueError("n_workers must be >= 1")
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    data = grid.dataset if dataset is None else dataset
    executor = PipelineExecutor(
        backend=backend or get_backend(config.backend),
        model_timeout=model_timeout,
    )
    cancel_event = cancel_event or threading.Event()
    errors = ErrorLogger(component=ErrorComponent.RUNNER, log_path=error_log)

    total = len(grid)
    logger.info(
        f"Running {total} pipelines on {len(data)} rows "
        f"(workers={n_workers}, chunk_size={chunk_size}, model_timeout={model_timeout})"
    )
    start = time.time()

    records: List[ResultRecord] = []
    chunks = grid.iter_chunks(chunk_size)
    max_in_flight = 2 * n_workers

    with ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="multiverse") as pool:
        in_flight: Dict[Future, int] = {}
        exhausted = False
        while in_flight or not exhausted:
            while not exhausted and len(in_flight) < max_in_flight:
                chunk = next(chunks, None)
                if chunk is None:
                    exhausted = True
                elif cancel_event.is_set():
                    records.extend(_cancelled(p) for p in chunk)
                else:
                    future = pool.submit(_run_chunk, executor, chunk, data, cancel_event)
                    in_flight[future] = chunk[0].decision_id

            if not in_flight:
                continue
            done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
            for future in done:
                first_id = in_flight.pop(future)
                # _run_chunk contains pipeline errors; anything here is a runner bug.
                chunk_records = future.result()
                records.extend(chunk_records)
                logger.debug(f"Chunk starting at pipeline {first_id} finished ({len(chunk_records)} records)")

    records.sort(key=lambda r: r.decision_id)

    for record in records:
        if record.failed:
            errors.log_failure(
                decision_id=record.decision_id,
                stage=record.failed_stage,
                reason=record.reason,
                message=record.error,
                context=record.decisions,
            )

    counts = {status: 0 for status in Status}
    for record in records:
        counts[record.status] += 1
    logger.info(
        f"Finished {total} pipelines in {time.time() - start:.2f}s: "
        f"{counts[Status.SUCCESS]} succeeded, {counts[Status.FAILED]} failed, "
        f"{counts[Status.CANCELLED]} cancelled"
    )
    if counts[Status.CANCELLED]:
        logger.warning(f"Batch cancelled; {counts[Status.CANCELLED]} pipelines did not run")
    return records

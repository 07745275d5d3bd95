"""Runs every registered interaction strategy concurrently and combines the alerts."""
from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait as wait_futures
from threading import Lock
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ...models import InteractionAlert, Medication, Patient, Prescription, RuleCorpus
from ..errors import EngineShutdownError, StrategyExecutionError
from .allergy import AllergyCheckStrategy
from .base import InteractionCheckStrategy
from .drug_condition import DrugConditionCheckStrategy
from .drug_drug import DrugDrugCheckStrategy

logger = logging.getLogger(__name__)


def default_strategies() -> Tuple[InteractionCheckStrategy, ...]:
    """The built-in strategies in their registration order."""
    return (
        AllergyCheckStrategy(),
        DrugDrugCheckStrategy(),
        DrugConditionCheckStrategy(),
    )


class InteractionEngine:
    """Fans a check out to every strategy on a worker pool and fans the results back in.

    The combined alert list is always ordered by strategy registration order,
    each strategy's own ordering kept intact, whatever order the workers finish
    in. A strategy that raises fails the whole check with
    ``StrategyExecutionError``; no partial result is returned.

    The engine owns its pool: call ``shutdown()`` (or use it as a context
    manager) to release it. Checks dispatched after shutdown raise
    ``EngineShutdownError`` immediately.
    """

    def __init__(
        self,
        strategies: Optional[Iterable[InteractionCheckStrategy]] = None,
        *,
        max_workers: Optional[int] = None,
    ) -> None:
        registered = tuple(strategies) if strategies is not None else default_strategies()
        if not registered:
            raise ValueError("at least one interaction strategy must be registered")
        self._strategies = registered
        self._max_workers = max_workers or len(registered)
        self._executor = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="interaction-check",
        )
        self._lock = Lock()
        self._shutdown = False
        logger.info(
            "interaction_engine.start strategies=%s workers=%d",
            ",".join(strategy.name for strategy in registered),
            self._max_workers,
        )

    @property
    def strategies(self) -> Tuple[InteractionCheckStrategy, ...]:
        return self._strategies

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def check_all_interactions(
        self,
        patient: Optional[Patient],
        prescription: Optional[Prescription],
        rules: Optional[RuleCorpus],
        all_medications: Optional[Sequence[Medication]],
    ) -> "asyncio.Future[List[InteractionAlert]]":
        """Dispatch every strategy against the same inputs and return a future of the combined alerts.

        Must be called from a running event loop. Raises ``EngineShutdownError``
        at the call, before anything is submitted, if the engine was shut down.
        Strategy failures arrive through the future. Bound the wait with
        ``asyncio.wait_for``; the engine imposes no timeout.
        """
        started = time.perf_counter()
        with self._lock:
            self._ensure_running()
            loop = asyncio.get_running_loop()
            futures = [
                loop.run_in_executor(
                    self._executor,
                    strategy.check,
                    patient,
                    prescription,
                    rules,
                    all_medications,
                )
                for strategy in self._strategies
            ]
        return asyncio.ensure_future(
            self._gather_and_combine(futures, patient=patient, started=started)
        )

    async def _gather_and_combine(
        self,
        futures: List["asyncio.Future[List[InteractionAlert]]"],
        *,
        patient: Optional[Patient],
        started: float,
    ) -> List[InteractionAlert]:
        results = await asyncio.gather(*futures, return_exceptions=True)
        return self._combine(results, patient=patient, started=started)

    def check_all_interactions_sync(
        self,
        patient: Optional[Patient],
        prescription: Optional[Prescription],
        rules: Optional[RuleCorpus],
        all_medications: Optional[Sequence[Medication]],
    ) -> List[InteractionAlert]:
        """Blocking variant of ``check_all_interactions`` for callers without an event loop."""
        started = time.perf_counter()
        with self._lock:
            self._ensure_running()
            futures = [
                self._executor.submit(strategy.check, patient, prescription, rules, all_medications)
                for strategy in self._strategies
            ]
        wait_futures(futures)
        results = [future.exception() or future.result() for future in futures]
        return self._combine(results, patient=patient, started=started)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting checks and release the worker pool.

        With ``wait=True`` checks already dispatched run to completion. Calling
        this again is a no-op.
        """
        with self._lock:
            if self._shutdown:
                logger.debug("interaction_engine.shutdown already_shut_down=True")
                return
            self._shutdown = True
        self._executor.shutdown(wait=wait)
        logger.info("interaction_engine.shutdown wait=%s", wait)

    def _ensure_running(self) -> None:
        if self._shutdown:
            raise EngineShutdownError()

    def _combine(
        self,
        results: Sequence[Any],
        *,
        patient: Optional[Patient],
        started: float,
    ) -> List[InteractionAlert]:
        combined: List[InteractionAlert] = []
        for strategy, result in zip(self._strategies, results):
            if isinstance(result, BaseException):
                logger.error(
                    "interaction_engine.strategy_failed strategy=%s patient_id=%s",
                    strategy.name,
                    getattr(patient, "patient_id", None),
                    exc_info=result,
                )
                raise StrategyExecutionError(strategy.name, result) from result
            combined.extend(result)

        logger.info(
            "interaction_engine.check patient_id=%s strategies=%d alerts=%d elapsed_ms=%.1f",
            getattr(patient, "patient_id", None),
            len(self._strategies),
            len(combined),
            (time.perf_counter() - started) * 1000,
        )
        return combined

    def __enter__(self) -> "InteractionEngine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    async def __aenter__(self) -> "InteractionEngine":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.shutdown()

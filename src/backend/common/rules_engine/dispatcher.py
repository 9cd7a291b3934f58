from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from .config import EngineSettings
from .context import ServiceContext
from .errors import PreconditionError
from .models import (
    EngineErrorKind,
    ExecutionMode,
    Outcome,
    OutcomeState,
    ReportEntry,
    ValidationReport,
)
from .registry import RuleCatalogue, build_default_catalogue
from .rule import Rule
from .selection import is_applicable, skip_reasons

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SECONDS = 0.05


def evaluate_isolated(rule: Rule, ctx: ServiceContext) -> Outcome:
    """Evaluate one rule, converting anything it raises into an ENGINE_ERROR outcome."""
    try:
        outcome = rule.evaluate(ctx)
    except PreconditionError as exc:
        logger.warning("Rule %s: context precondition violated: %s", rule.rule_id, exc)
        return Outcome.engine_error(EngineErrorKind.PRECONDITION, type(exc).__name__, str(exc))
    except Exception as exc:
        logger.exception("Rule %s raised during evaluation", rule.rule_id)
        return Outcome.engine_error(EngineErrorKind.EXCEPTION, type(exc).__name__, str(exc))

    if not isinstance(outcome, Outcome):
        logger.error("Rule %s returned %r instead of an Outcome", rule.rule_id, type(outcome).__name__)
        return Outcome.engine_error(
            EngineErrorKind.INVALID_OUTCOME,
            type(outcome).__name__,
            "Rule did not return an Outcome.",
        )
    return outcome


class Dispatcher:
    def __init__(
        self,
        catalogue: Optional[RuleCatalogue] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._catalogue = catalogue if catalogue is not None else build_default_catalogue()
        self._settings = settings or EngineSettings()

    @property
    def catalogue(self) -> RuleCatalogue:
        return self._catalogue

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    def resolve_mode(self, ctx: ServiceContext, mode: Optional[ExecutionMode] = None) -> ExecutionMode:
        if mode is not None:
            return mode
        if ctx.is_offline:
            return ExecutionMode.OFFLINE
        return self._settings.mode

    def select(self, ctx: ServiceContext, mode: ExecutionMode) -> list[Rule]:
        selected: list[Rule] = []
        for rule in self._catalogue.all():
            descriptor = rule.descriptor
            if not self._settings.allows(descriptor):
                logger.debug("Rule %s excluded by engine settings", descriptor.identifier)
                continue
            if not is_applicable(descriptor, ctx, mode):
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(
                        "Rule %s not applicable: %s",
                        descriptor.identifier,
                        "; ".join(skip_reasons(descriptor, ctx, mode)),
                    )
                continue
            selected.append(rule)
        return selected

    def run(
        self,
        ctx: ServiceContext,
        *,
        mode: Optional[ExecutionMode] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ValidationReport:
        mode = self.resolve_mode(ctx, mode)
        cancel_event = cancel_event or threading.Event()
        selected = self.select(ctx, mode)
        logger.info(
            "Dispatching %d of %d rules against %s (mode=%s, version=%s)",
            len(selected),
            len(self._catalogue),
            ctx.destination,
            mode.value,
            ctx.version.value,
        )

        if self._settings.max_workers == 1 and self._settings.rule_timeout_seconds is None:
            outcomes, cancelled = self._run_serial(selected, ctx, cancel_event)
        else:
            outcomes, cancelled = self._run_pool(selected, ctx, cancel_event)

        # Catalogue order, never completion order.
        entries = [
            ReportEntry(
                rule_id=rule.rule_id,
                category=rule.descriptor.category,
                requirement_level=rule.descriptor.requirement_level,
                outcome=outcomes[index],
            )
            for index, rule in enumerate(selected)
            if index in outcomes
        ]
        totals: dict[OutcomeState, int] = {}
        for entry in entries:
            totals[entry.outcome.state] = totals.get(entry.outcome.state, 0) + 1

        report = ValidationReport(
            run_id=str(uuid.uuid4()),
            generated_at=datetime.now(timezone.utc),
            destination=ctx.destination,
            mode=mode,
            version=ctx.version,
            entries=entries,
            totals=totals,
            cancelled=cancelled,
        )
        logger.info(
            "Validation of %s finished: %s%s",
            ctx.destination,
            ", ".join(f"{state.value}={count}" for state, count in sorted(totals.items())) or "no rules run",
            " (cancelled)" if cancelled else "",
        )
        return report

    def _run_serial(
        self,
        selected: list[Rule],
        ctx: ServiceContext,
        cancel_event: threading.Event,
    ) -> Tuple[Dict[int, Outcome], bool]:
        outcomes: Dict[int, Outcome] = {}
        for index, rule in enumerate(selected):
            if cancel_event.is_set():
                logger.warning("Validation cancelled; %d rule(s) not dispatched", len(selected) - index)
                return outcomes, True
            outcomes[index] = evaluate_isolated(rule, ctx)
        return outcomes, False

    def _run_pool(
        self,
        selected: list[Rule],
        ctx: ServiceContext,
        cancel_event: threading.Event,
    ) -> Tuple[Dict[int, Outcome], bool]:
        timeout = self._settings.rule_timeout_seconds
        max_workers = self._settings.max_workers
        outcomes: Dict[int, Outcome] = {}
        started: Dict[int, float] = {}
        futures: Dict[Future, int] = {}
        abandoned: set[Future] = set()
        cancelled = False

        def _invoke(rule: Rule, index: int) -> Outcome:
            started[index] = time.monotonic()
            return evaluate_isolated(rule, ctx)

        executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rule-eval")
        try:
            for index, rule in enumerate(selected):
                if cancel_event.is_set():
                    break
                futures[executor.submit(_invoke, rule, index)] = index

            pending = set(futures)
            while pending:
                done, pending = wait(pending, timeout=_POLL_INTERVAL_SECONDS, return_when=FIRST_COMPLETED)
                for fut in done:
                    if not fut.cancelled():
                        outcomes[futures[fut]] = fut.result()

                if cancel_event.is_set() and not cancelled:
                    cancelled = True
                    # Queued evaluations are dropped; running ones are allowed to finish.
                    for fut in pending:
                        fut.cancel()
                    pending = {fut for fut in pending if not fut.cancelled()}
                    logger.warning("Validation cancelled; waiting on %d in-flight rule(s)", len(pending))

                if timeout is None:
                    continue
                now = time.monotonic()
                for fut in list(pending):
                    index = futures[fut]
                    start = started.get(index)
                    if start is None or now - start <= timeout:
                        continue
                    pending.discard(fut)
                    if fut.done():
                        outcomes[index] = fut.result()
                        continue
                    abandoned.add(fut)
                    logger.warning("Rule %s exceeded %.1fs timeout; abandoning", selected[index].rule_id, timeout)
                    outcomes[index] = Outcome.engine_error(
                        EngineErrorKind.TIMEOUT,
                        "TimeoutError",
                        f"Rule evaluation exceeded {timeout}s.",
                    )

                hung = sum(1 for fut in abandoned if not fut.done())
                if pending and hung >= max_workers:
                    for fut in list(pending):
                        if fut.cancel():
                            pending.discard(fut)
                            outcomes[futures[fut]] = Outcome.engine_error(
                                EngineErrorKind.NOT_STARTED,
                                "",
                                "Not started: every worker is held by a timed-out rule.",
                            )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if len(futures) < len(selected):
            cancelled = True
            logger.warning("Validation cancelled; %d rule(s) not dispatched", len(selected) - len(futures))
        return outcomes, cancelled


def run(
    catalogue: RuleCatalogue,
    ctx: ServiceContext,
    mode: Optional[ExecutionMode] = None,
    *,
    settings: Optional[EngineSettings] = None,
) -> ValidationReport:
    return Dispatcher(catalogue, settings).run(ctx, mode=mode)

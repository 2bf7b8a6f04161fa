"""Conformance test orchestration.

The :class:`ConformanceManager` owns one driver handle for one run. It walks
the device through its test plan phase by phase, classifies every outcome
into a verdict, streams results to a sink and returns a :class:`RunReport`.

Each check runs on a short-lived daemon worker thread while the manager's
thread waits for it in steps of ``run.poll_interval``, checking the
cancellation token between steps. A check that overruns its timeout is
recorded as a TIMEOUT failure and abandoned; the run moves on.

Example:
    token = CancellationToken()
    with ConformanceManager(settings, LoggingResultSink(), token) as manager:
        report = manager.run_conformance_test()
    print(report.summary())
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from conformu.cancellation import CancellationToken
from conformu.devices.base import DeviceFacade
from conformu.devices.factory import TRANSLATORS, create_facade, create_handle
from conformu.errors import DeviceError, ErrorKind, HarnessError, SettingsError, StateError
from conformu.plans import CheckContext, CheckOutcome, TestCase, TestPlan, get_test_plan
from conformu.results import RunReport, TestResult
from conformu.settings import ConformSettings
from conformu.sinks import ResultSink
from conformu.transport.handle import DriverHandle
from conformu.types import Phase, RunState, Timestamp, TransportKind, Verdict

logger = logging.getLogger(__name__)

HandleFactory = Callable[[ConformSettings], DriverHandle]

CONNECT_CASE_ID = "connect"

_ERROR_VERDICTS = {
    ErrorKind.UNSUPPORTED: Verdict.WARNING,
    ErrorKind.CANCELLED: Verdict.ABORTED,
    ErrorKind.PREREQUISITE_NOT_MET: Verdict.SKIPPED,
}


@dataclass
class _Attempt:
    """Outcome of a call made on a worker thread."""

    value: Any = None
    error: Exception | None = None
    timed_out: bool = False
    cancelled: bool = False


class ConformanceManager:
    """Runs the conformance test plan against one device.

    Args:
        settings: Validated run settings.
        sink: Receives each result as soon as it is produced.
        cancellation: Token that aborts the run when cancelled.
        handle_factory: Creates the driver handle; defaults to
            :func:`conformu.devices.factory.create_handle`.
        plan: Test plan to run; defaults to the plan for the configured category.

    Raises:
        SettingsError: If no plan is given and the category has none.
    """

    def __init__(
        self,
        settings: ConformSettings,
        sink: ResultSink,
        cancellation: CancellationToken,
        *,
        handle_factory: HandleFactory | None = None,
        plan: TestPlan | None = None,
    ) -> None:
        self._settings = settings
        self._sink = sink
        self._cancellation = cancellation
        self._handle_factory = handle_factory or create_handle
        if plan is None:
            try:
                plan = get_test_plan(settings.device.category)
            except KeyError as exc:
                raise SettingsError([str(exc.args[0])]) from exc
        self._plan = plan

        self._state = RunState.IDLE
        self._phase: Phase | None = None
        self._handle: DriverHandle | None = None
        self._facade: DeviceFacade | None = None
        self._released = False
        self._started = False
        self._results: list[TestResult] = []
        self._report: RunReport | None = None

    @property
    def state(self) -> RunState:
        """Return the current run state."""
        return self._state

    @property
    def current_phase(self) -> Phase | None:
        """Return the phase being executed, or None outside RUNNING."""
        return self._phase

    @property
    def plan(self) -> TestPlan:
        return self._plan

    @property
    def results(self) -> tuple[TestResult, ...]:
        """Return the results produced so far."""
        return tuple(self._results)

    @property
    def report(self) -> RunReport | None:
        """Return the report once the run has finished."""
        return self._report

    # -- Run -----------------------------------------------------------------

    def run_conformance_test(self) -> RunReport:
        """Execute the test plan and return the report.

        May be called once per manager.

        Returns:
            The run report.

        Raises:
            StateError: If the run was already started.
            HarnessError: If a check raised something other than a DeviceError.
                The run is finalized first and the report is available on
                :attr:`report`.
        """
        if self._started:
            raise StateError("run_conformance_test() may only be called once per manager")
        self._started = True

        start_time = Timestamp.now()
        scheduled = self._plan.schedule(self._settings.run.phases)
        harness_error: HarnessError | None = None
        logger.info(
            "Starting conformance run: %s over %s, %d cases",
            self._settings.device.category.value,
            self._settings.device.transport.value,
            len(scheduled),
        )

        if self._cancellation.is_cancelled:
            logger.warning("Run cancelled before it started")
            first = scheduled[0] if scheduled else None
            self._emit(self._aborted(first, "Run cancelled before it started"))
            final_state = RunState.ABORTED
        else:
            self._set_state(RunState.CONNECTING)
            final_state = self._connect()
            if final_state is RunState.RUNNING:
                self._set_state(RunState.RUNNING)
                try:
                    final_state = self._run_cases(scheduled)
                except HarnessError as exc:
                    harness_error = exc
                    final_state = RunState.FATAL
                finally:
                    self._phase = None
            self._set_state(RunState.FINALIZING)
            self._finalize()

        self._set_state(final_state)
        self._report = RunReport(
            category=self._settings.device.category,
            transport=self._settings.device.transport,
            device=self._device_label(),
            state=final_state,
            results=tuple(self._results),
            scheduled=len(scheduled),
            phases=self._settings.run.phases,
            start_time=start_time,
            end_time=Timestamp.now(),
        )
        logger.info(
            "Conformance run %s: verdict %s",
            final_state.value,
            self._report.verdict.value,
        )
        if harness_error is not None:
            raise harness_error
        return self._report

    def _connect(self) -> RunState:
        """Create the handle and facade and connect the device.

        Returns:
            RUNNING on success, otherwise the terminal state to finish in.
        """
        transport = self._settings.device.transport
        try:
            self._handle = self._handle_factory(self._settings)
            self._facade = create_facade(self._settings.device.category, transport, self._handle)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Cannot create driver: %s", exc)
            self._emit(self._connect_failure(self._classify_connect_error(transport, exc), exc))
            return RunState.FATAL

        facade = self._facade
        timeout = self._settings.run.case_timeout
        attempt = self._call_bounded(facade.connect, timeout, CONNECT_CASE_ID)
        if attempt.cancelled:
            self._emit(
                self._make_result(
                    None,
                    Verdict.ABORTED,
                    "Run cancelled while connecting",
                    ErrorKind.CANCELLED,
                    case_id=CONNECT_CASE_ID,
                )
            )
            return RunState.ABORTED
        if attempt.timed_out:
            error = DeviceError(ErrorKind.TIMEOUT, "Connected", f"no response within {timeout:g}s")
            self._emit(self._connect_failure(error.kind, error))
            return RunState.FATAL
        if attempt.error is not None:
            logger.error("Cannot connect to %s: %s", self._device_label(), attempt.error)
            kind = self._classify_connect_error(transport, attempt.error)
            self._emit(self._connect_failure(kind, attempt.error))
            return RunState.FATAL

        logger.info("Connected to %s", self._device_label())
        return RunState.RUNNING

    def _run_cases(self, scheduled: list[TestCase]) -> RunState:
        assert self._facade is not None
        context = CheckContext(self._facade, self._settings, self._cancellation)
        verdicts: dict[str, Verdict] = {}

        for case in scheduled:
            if case.phase is not self._phase:
                self._phase = case.phase
                logger.info("Phase: %s", case.phase.display_name)

            if self._cancellation.is_cancelled:
                self._emit(self._aborted(case, "Run cancelled before this case started"))
                return RunState.ABORTED

            # A prerequisite outside the selected phases has no result and counts as met.
            unmet = sorted(
                p
                for p in case.prerequisites
                if verdicts.get(p) in (Verdict.FAIL, Verdict.SKIPPED)
            )
            if unmet:
                result = self._make_result(
                    case,
                    Verdict.SKIPPED,
                    "Prerequisite not met: " + ", ".join(unmet),
                    ErrorKind.PREREQUISITE_NOT_MET,
                )
            else:
                result = self._execute(case, context)

            verdicts[case.id] = result.verdict
            self._emit(result)
            if result.verdict is Verdict.ABORTED:
                return RunState.ABORTED

        return RunState.COMPLETED

    def _execute(self, case: TestCase, context: CheckContext) -> TestResult:
        timeout = case.timeout if case.timeout is not None else self._settings.run.case_timeout
        logger.debug("Running %s (timeout %gs)", case.id, timeout)
        attempt = self._call_bounded(lambda: case.check(context), timeout, case.id)

        if attempt.cancelled:
            return self._aborted(case, "Run cancelled while this case was running")
        if attempt.timed_out:
            logger.warning("%s did not finish within %gs; abandoning it", case.id, timeout)
            return self._make_result(
                case, Verdict.FAIL, f"Timed out after {timeout:g}s", ErrorKind.TIMEOUT
            )
        if attempt.error is not None:
            if isinstance(attempt.error, DeviceError):
                return self._classify_device_error(case, attempt.error)
            message = f"{type(attempt.error).__name__}: {attempt.error}"
            raise self._harness_failure(case, message) from attempt.error
        return self._classify_outcome(case, attempt.value)

    def _finalize(self) -> None:
        """Leave the device disconnected and release the handle."""
        if self._facade is not None:
            facade = self._facade
            timeout = self._settings.run.disconnect_timeout

            def disconnect() -> None:
                facade.connected = False

            attempt = self._call_bounded(disconnect, timeout, "disconnect", cancellable=False)
            if attempt.timed_out:
                logger.warning("Disconnect did not complete within %gs", timeout)
            elif attempt.error is not None:
                logger.warning("Disconnect failed: %s", attempt.error)
        self._release()

    # -- Worker threads ------------------------------------------------------

    def _call_bounded(
        self,
        func: Callable[[], Any],
        timeout: float,
        name: str,
        cancellable: bool = True,
    ) -> _Attempt:
        """Run ``func`` on a daemon thread and wait for it with a bound.

        The wait wakes every ``run.poll_interval`` seconds to check the
        cancellation token. A call still running at the deadline or at
        cancellation is abandoned.
        """
        attempt = _Attempt()
        done = threading.Event()

        def target() -> None:
            try:
                attempt.value = func()
            except Exception as exc:  # pylint: disable=broad-except
                attempt.error = exc
            finally:
                done.set()

        worker = threading.Thread(target=target, name=f"conformu-{name}", daemon=True)
        worker.start()

        poll = self._settings.run.poll_interval
        deadline = time.monotonic() + timeout
        while not done.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                attempt.timed_out = True
                break
            if done.wait(min(poll, remaining)):
                break
            if cancellable and self._cancellation.is_cancelled:
                attempt.cancelled = True
                break
        return attempt

    # -- Classification ------------------------------------------------------

    def _classify_device_error(self, case: TestCase, error: DeviceError) -> TestResult:
        verdict = _ERROR_VERDICTS.get(error.kind, Verdict.FAIL)
        if error.kind is ErrorKind.UNSUPPORTED and not case.optional:
            verdict = Verdict.FAIL
            message = f"Required member not implemented: {error}"
        elif error.kind is ErrorKind.UNSUPPORTED:
            message = f"Not implemented: {error}"
        else:
            message = str(error)
        return self._make_result(case, verdict, message, error.kind)

    def _classify_outcome(self, case: TestCase, value: Any) -> TestResult:
        if isinstance(value, CheckOutcome):
            return self._make_result(
                case, value.verdict, value.message or case.name, details=value.details
            )
        if value is None or isinstance(value, str):
            return self._make_result(case, Verdict.PASS, value or case.name)
        raise self._harness_failure(case, f"check returned unsupported value {value!r}")

    def _harness_failure(self, case: TestCase, message: str) -> HarnessError:
        """Record a FATAL result for ``case`` and return the error to raise."""
        logger.critical("Harness error in %s: %s", case.id, message)
        self._emit(self._make_result(case, Verdict.FATAL, f"Harness error: {message}"))
        return HarnessError(case.id, message)

    @staticmethod
    def _classify_connect_error(transport: TransportKind, exc: Exception) -> ErrorKind:
        if isinstance(exc, DeviceError):
            return exc.kind
        return TRANSLATORS[transport](CONNECT_CASE_ID, exc).kind

    # -- Results -------------------------------------------------------------

    def _make_result(
        self,
        case: TestCase | None,
        verdict: Verdict,
        message: str,
        error_kind: ErrorKind | None = None,
        details: tuple[str, ...] = (),
        case_id: str | None = None,
    ) -> TestResult:
        if case is None:
            return TestResult(
                case_id=case_id or "run",
                name="Connect to device" if case_id == CONNECT_CASE_ID else "Conformance run",
                phase=None,
                verdict=verdict,
                message=message,
                error_kind=error_kind,
                details=details,
            )
        return TestResult(
            case_id=case.id,
            name=case.name,
            phase=case.phase,
            verdict=verdict,
            message=message,
            error_kind=error_kind,
            details=details,
        )

    def _aborted(self, case: TestCase | None, message: str) -> TestResult:
        return self._make_result(case, Verdict.ABORTED, message, ErrorKind.CANCELLED)

    def _connect_failure(self, kind: ErrorKind, exc: Exception) -> TestResult:
        return self._make_result(
            None,
            Verdict.FATAL,
            f"Cannot connect: {type(exc).__name__}: {exc}",
            kind,
            case_id=CONNECT_CASE_ID,
        )

    def _emit(self, result: TestResult) -> None:
        self._results.append(result)
        self._sink.record(result)

    # -- Lifecycle -----------------------------------------------------------

    def _set_state(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self._state.value, state.value)
        self._state = state

    def _device_label(self) -> str:
        if self._handle is not None:
            return self._handle.description
        if self._settings.device.transport is TransportKind.LOCAL_INTEROP:
            return self._settings.local.driver
        return self._settings.alpaca.base_url

    def _release(self) -> None:
        if self._handle is None or self._released:
            return
        self._released = True
        try:
            self._handle.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error closing driver handle: %s", exc)
        logger.debug("Released driver handle %s", self._handle.description)

    def dispose(self) -> None:
        """Release the driver handle. Safe to call more than once."""
        self._release()

    def __enter__(self) -> ConformanceManager:
        return self

    def __exit__(self, *args: object) -> None:
        self.dispose()

"""
Task - A running (or finished) execution of a picker.

Each TaskInstance owns a ResultStream, a Query, a keymap and one producer
run at a time. Producers run on a daemon thread so starting a picker never
blocks the caller; they talk to the consumer only through the stream.

Status lifecycle:
  RUNNING → COMPLETED | FAILED
  any state → CANCELLED (final)

A dynamic picker (live grep) starts a fresh run when its query text
changes, so its status follows the latest run until it is cancelled.
"""

import subprocess
import threading
from collections import deque
from enum import Enum
from typing import Any, Callable, Optional, Union

from loguru import logger

from livepick.config import PickerOptions
from livepick.errors import OptionError, PickerTimeout, ProducerFailure
from livepick.search.matcher import MatchMode, Query, rank_texts
from livepick.search.stream import ResultItem, ResultStream
from livepick.tasks.spec import ProducerKind, TaskSpec, to_item

STDERR_TAIL_LINES = 20

# (mode, key) → action name on TaskInstance
DEFAULT_MAPPINGS = {
    ("i", "<CR>"): "confirm",
    ("n", "<CR>"): "confirm",
    ("i", "<C-c>"): "cancel",
    ("n", "<Esc>"): "cancel",
    ("i", "<Tab>"): "toggle_selection",
    ("n", "<Tab>"): "toggle_selection",
    ("i", "<C-n>"): "move_next",
    ("i", "<Down>"): "move_next",
    ("i", "<C-p>"): "move_previous",
    ("i", "<Up>"): "move_previous",
}

# Action names a key may be bound to
ACTIONS = frozenset(DEFAULT_MAPPINGS.values())

Action = Union[str, Callable[["TaskInstance"], Any]]


class TaskStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class _ProducerRun:
    """One execution of a spec's producer, feeding one stream."""

    def __init__(self, spec: TaskSpec, options: PickerOptions, query_text: str,
                 stream: ResultStream, on_finish: Callable):
        self.spec = spec
        self.options = options
        self.query_text = query_text
        self.stream = stream
        self._on_finish = on_finish
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._proc: Optional[subprocess.Popen] = None
        self._stderr_tail: deque = deque(maxlen=STDERR_TAIL_LINES)
        self._thread = threading.Thread(
            target=self._run,
            name=f"livepick-{spec.name}",
            daemon=True,
        )

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        failure = None
        try:
            if self.spec.kind == ProducerKind.PROCESS:
                failure = self._run_process()
            else:
                self._run_iterable()
        except Exception as e:
            logger.exception(f"Producer for picker '{self.spec.name}' crashed")
            failure = f"{type(e).__name__}: {e}"
        finally:
            self.stream.seal()

        self._on_finish(self, failure)

    def _run_iterable(self) -> None:
        if self.spec.kind == ProducerKind.STATIC:
            source = self.spec.source
        else:
            source = self.spec.source(self.options, self.query_text)
        for raw in source or ():
            if self.cancelled:
                break
            self.stream.append(to_item(raw))

    def _run_process(self) -> Optional[str]:
        """Run the picker command, streaming stdout lines. Returns a failure reason or None."""
        argv = self.spec.source(self.options, self.query_text)
        if not argv:
            return None

        logger.debug(f"Picker '{self.spec.name}' spawning: {argv}")
        try:
            proc = subprocess.Popen(
                argv,
                cwd=self.options.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError:
            return f"command not found: {argv[0]}"
        except OSError as e:
            return f"could not start {argv[0]}: {e}"

        with self._lock:
            self._proc = proc
            if self.cancelled:
                proc.terminate()

        stderr_reader = threading.Thread(
            target=self._drain_stderr, args=(proc,), daemon=True
        )
        stderr_reader.start()

        try:
            for line in proc.stdout:
                if self.cancelled:
                    break
                item = self.spec.entry_maker(line.rstrip("\r\n"), self.options)
                if item is not None:
                    self.stream.append(item)
        except BaseException:
            proc.kill()
            proc.wait()
            raise

        returncode = proc.wait()
        stderr_reader.join(timeout=1.0)
        proc.stdout.close()

        if self.cancelled:
            return None
        if returncode not in self.spec.ok_exit_codes:
            detail = "\n".join(self._stderr_tail).strip()
            reason = f"{argv[0]} exited with code {returncode}"
            return f"{reason}: {detail}" if detail else reason
        return None

    def _drain_stderr(self, proc: subprocess.Popen) -> None:
        for line in proc.stderr:
            self._stderr_tail.append(line.rstrip("\r\n"))
        proc.stderr.close()

    def cancel(self) -> None:
        """
        Interrupt the producer.

        Seals the stream first, so nothing is appended once this returns.
        A running process gets terminate(), then kill() after the grace period.
        """
        with self._lock:
            self._cancelled.set()
            proc = self._proc
        self.stream.seal()

        grace = self.spec.cancel_grace
        if proc is not None and proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=grace)
            except subprocess.TimeoutExpired:
                logger.debug(f"Picker '{self.spec.name}' ignored terminate, killing")
                proc.kill()

        if threading.current_thread() is not self._thread and self._thread.is_alive():
            self._thread.join(timeout=grace)


class TaskInstance:
    """A picker execution: status, results, query, selection and keymap."""

    def __init__(self, spec: TaskSpec, options: Optional[PickerOptions] = None):
        self.spec = spec
        self.name = spec.name
        self.options = options or PickerOptions()
        self.query = Query(
            text=self.options.default_text,
            mode=MatchMode(self.options.mode),
            threshold=self.options.fuzzy_threshold,
        )
        self.stream = ResultStream(self.options.max_results)
        self.keymap: dict[tuple[str, str], Action] = {}
        self.cursor = 0
        self.confirmed: Optional[list[ResultItem]] = None
        self.failure: Optional[ProducerFailure] = None

        self._status = TaskStatus.RUNNING
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._run: Optional[_ProducerRun] = None
        self._started = False

    def __repr__(self) -> str:
        return f"<TaskInstance {self.name} {self._status.value} items={len(self.stream)}>"

    @property
    def status(self) -> TaskStatus:
        return self._status

    @property
    def done(self) -> bool:
        return self._done.is_set()

    # Lifecycle

    def start(self) -> "TaskInstance":
        """Attach mappings and launch the producer. Returns immediately."""
        if self._started:
            return self
        self._started = True
        self._attach_mappings()
        self._launch()
        return self

    def _launch(self) -> None:
        run = _ProducerRun(
            self.spec, self.options, self.query.text, self.stream, self._finish
        )
        with self._lock:
            self._run = run
        run.start()

    def _finish(self, run: _ProducerRun, failure: Optional[str]) -> None:
        with self._lock:
            # Superseded runs (dynamic refresh) and cancelled instances keep their state
            if run is not self._run or self._status != TaskStatus.RUNNING:
                return
            if failure is not None:
                self.failure = ProducerFailure(self.name, failure)
                self._status = TaskStatus.FAILED
                logger.warning(str(self.failure))
            else:
                self._status = TaskStatus.COMPLETED
                logger.debug(f"Picker '{self.name}' completed with {len(self.stream)} items")
            self._done.set()

    def cancel(self) -> None:
        """
        Cancel the picker. Idempotent; collected results stay readable.

        Any state moves to CANCELLED, including COMPLETED and FAILED, and
        stays there: a cancelled dynamic picker is not re-run by set_query.
        """
        with self._lock:
            if self._status == TaskStatus.CANCELLED:
                return
            running = self._status == TaskStatus.RUNNING
            self._status = TaskStatus.CANCELLED
            run = self._run
            self._done.set()
        logger.debug(f"Picker '{self.name}' cancelled")
        if running and run is not None:
            run.cancel()

    def wait(self, timeout: Optional[float] = None,
             cancel_on_timeout: bool = False) -> "TaskInstance":
        """
        Block until the producer reaches a terminal state.

        Args:
            timeout: Seconds to wait; None waits forever
            cancel_on_timeout: Cancel the task on timeout instead of leaving
                it running detached

        Raises:
            PickerTimeout: the timeout elapsed first
            ProducerFailure: the producer failed
        """
        if not self._done.wait(timeout):
            if cancel_on_timeout:
                self.cancel()
            raise PickerTimeout(self.name, timeout)
        self.raise_for_status()
        return self

    def raise_for_status(self) -> None:
        if self._status == TaskStatus.FAILED and self.failure is not None:
            raise self.failure

    # Query and results

    def set_query(self, text: str, mode: Optional[Union[MatchMode, str]] = None) -> None:
        """Update the query. Dynamic pickers re-run their producer on text changes."""
        previous = self.query
        self.query = Query(
            text=text,
            mode=MatchMode(mode) if mode is not None else previous.mode,
            threshold=previous.threshold,
        )
        self.cursor = 0
        if self.spec.dynamic and text != previous.text:
            self._refresh()

    def _refresh(self) -> None:
        with self._lock:
            if self._status == TaskStatus.CANCELLED:
                return
            old = self._run
            self._run = None
            self.stream = ResultStream(self.options.max_results)
            self._status = TaskStatus.RUNNING
            self.failure = None
            self._done.clear()
        if old is not None:
            old.cancel()
        logger.debug(f"Picker '{self.name}' re-running for query {self.query.text!r}")
        self._launch()

    def _ranking_query(self) -> Query:
        # Dynamic producers already filtered by the query text
        if self.spec.dynamic:
            return self.query.with_text("")
        return self.query

    def ranked_indices(self) -> list[int]:
        return self.stream.rank(self._ranking_query())

    def ranked(self) -> list[ResultItem]:
        """Current results, best match first."""
        view = self.stream.snapshot()
        return [view[i] for i in rank_texts(view.texts(), self._ranking_query())]

    def current(self) -> Optional[ResultItem]:
        ranked = self.ranked()
        if not ranked:
            return None
        return ranked[min(self.cursor, len(ranked) - 1)]

    # Actions

    def move_next(self) -> None:
        self.cursor = min(self.cursor + 1, max(0, len(self.ranked()) - 1))

    def move_previous(self) -> None:
        self.cursor = max(0, self.cursor - 1)

    def toggle_selection(self) -> Optional[bool]:
        item = self.current()
        if item is None:
            return None
        return self.stream.toggle_selection(item.index)

    def confirm(self) -> list[ResultItem]:
        """Confirm the multi-selection, or the item under the cursor when nothing is selected."""
        selected = self.stream.selected_items()
        if not selected:
            item = self.current()
            selected = [item] if item is not None else []
        self.confirmed = selected
        return selected

    # Key mappings

    def map(self, mode: str, key: str, action: Action) -> None:
        """
        Bind a key to an action name or a callable taking this instance.

        Raises:
            OptionError: action is not in ACTIONS and not callable
        """
        check_action(self.name, key, action)
        self.keymap[(mode, key)] = action

    def press(self, mode: str, key: str) -> Any:
        """Run the action bound to a key. Unbound keys do nothing."""
        action = self.keymap.get((mode, key))
        if action is None:
            return None
        check_action(self.name, key, action)
        if isinstance(action, str):
            return getattr(self, action)()
        return action(self)

    def _attach_mappings(self) -> None:
        keep_defaults = True
        hook = self.options.attach_mappings
        if hook is not None:
            keep_defaults = hook(self, self.map)
        if keep_defaults is not False:
            for binding, action in DEFAULT_MAPPINGS.items():
                self.keymap.setdefault(binding, action)


def check_action(picker: str, key: str, action: Any) -> None:
    if isinstance(action, str):
        if action not in ACTIONS:
            known = ", ".join(sorted(ACTIONS))
            raise OptionError(picker, "mappings",
                              f"binds {key!r} to unknown action {action!r} (known: {known})")
    elif not callable(action):
        raise OptionError(picker, "mappings", f"action for {key!r} must be a name or callable")


def start_task(spec: TaskSpec, options: Optional[PickerOptions] = None) -> TaskInstance:
    """Create a TaskInstance and start its producer without blocking."""
    return TaskInstance(spec, options).start()

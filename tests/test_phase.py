import pytest

from conftest import RecordingTask
from phasebot.errors import PhaseLifecycleError
from phasebot.phase import FailurePolicy, Phase, SequencePhase
from phasebot.types import TaskResult, TaskState


class ListPhase(Phase):
    def __init__(self, tasks, failure_policy=FailurePolicy.CONTINUE):
        super().__init__(failure_policy)
        self._given = tasks

    def build_tasks(self):
        return self._given


def running(tasks):
    return [t for t in tasks if t.state is TaskState.RUNNING]


def test_init_phase_initializes_only_first_task():
    log = []
    tasks = [RecordingTask("a", log), RecordingTask("b", log)]
    phase = ListPhase(tasks)
    phase.init_phase()
    assert log == ["a.initialize"]
    assert phase.current_task is tasks[0]
    assert tasks[1].state is TaskState.CREATED


def test_sequence_runs_in_order_with_one_running_task():
    log = []
    tasks = [RecordingTask("a", log, 2), RecordingTask("b", log, 1), RecordingTask("c", log, 3)]
    phase = ListPhase(tasks)
    phase.init_phase()
    assert len(running(tasks)) == 1
    for _ in range(10):
        phase.update_phase()
        assert len(running(tasks)) <= 1
    assert phase.is_complete
    assert log == [
        "a.initialize", "a.update", "a.update", "a.finish",
        "b.initialize", "b.update", "b.finish",
        "c.initialize", "c.update", "c.update", "c.update", "c.finish",
    ]
    assert [r for _, r in phase.results] == [TaskResult.SUCCESS] * 3


def test_complete_phase_stays_resident_and_ignores_ticks():
    log = []
    phase = ListPhase([RecordingTask("a", log)])
    phase.init_phase()
    phase.update_phase()
    assert phase.is_complete and phase.is_active
    phase.update_phase()
    phase.update_phase()
    assert log == ["a.initialize", "a.update", "a.finish"]
    phase.finish_phase()
    assert not phase.is_active


def test_finish_phase_interrupts_current_task_once():
    log = []
    tasks = [RecordingTask("a", log, None), RecordingTask("b", log)]
    phase = ListPhase(tasks)
    phase.init_phase()
    phase.update_phase()
    phase.finish_phase()
    assert tasks[0].finishes == 1
    assert tasks[0].result is TaskResult.FAILURE
    assert tasks[1].state is TaskState.CREATED
    phase.finish_phase()
    assert tasks[0].finishes == 1
    assert phase.current_task is None


def test_stalled_task_holds_phase_indefinitely():
    log = []
    tasks = [RecordingTask("stuck", log, None), RecordingTask("never", log)]
    phase = ListPhase(tasks)
    phase.init_phase()
    for _ in range(50):
        phase.update_phase()
    assert phase.current_task is tasks[0]
    assert tasks[0].updates == 50
    assert not phase.is_complete


def test_failure_is_ignored_by_default():
    log = []
    tasks = [RecordingTask("a", log, 1, TaskResult.FAILURE), RecordingTask("b", log)]
    phase = ListPhase(tasks)
    phase.init_phase()
    phase.update_phase()
    assert phase.current_task is tasks[1]
    phase.update_phase()
    assert phase.results == (("a", TaskResult.FAILURE), ("b", TaskResult.SUCCESS))
    assert not phase.aborted


def test_failure_aborts_with_abort_policy():
    log = []
    tasks = [RecordingTask("a", log, 1, TaskResult.FAILURE), RecordingTask("b", log)]
    phase = ListPhase(tasks, FailurePolicy.ABORT)
    phase.init_phase()
    phase.update_phase()
    assert phase.aborted
    assert phase.is_complete
    assert phase.current_task is None
    assert tasks[1].state is TaskState.CREATED
    phase.finish_phase()
    assert tasks[1].finishes == 0


def test_empty_phase_is_immediately_complete():
    phase = ListPhase([])
    phase.init_phase()
    assert phase.is_complete
    phase.update_phase()


def test_lifecycle_misuse():
    phase = ListPhase([])
    with pytest.raises(PhaseLifecycleError):
        phase.update_phase()
    phase.init_phase()
    with pytest.raises(PhaseLifecycleError):
        phase.init_phase()


def test_sequence_phase_builds_fresh_tasks_each_run():
    log = []
    phase = SequencePhase([lambda: RecordingTask("a", log)], name="Demo")
    assert phase.name == "Demo"
    phase.init_phase()
    first = phase.current_task
    phase.finish_phase()
    phase.init_phase()
    assert phase.current_task is not first
    assert phase.current_task.state is TaskState.RUNNING

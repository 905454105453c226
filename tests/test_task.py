import pytest

from conftest import RecordingTask
from phasebot.errors import TaskLifecycleError
from phasebot.tasks import (
    AwaitStatusTask,
    ExpandWinchTask,
    SetShooterAngleTask,
    SetShooterSpeedTask,
    Status,
    TurnDegreesTask,
    WaitTask,
)
from phasebot.types import TaskResult, TaskState


def test_lifecycle_states_and_result():
    log = []
    task = RecordingTask("a", log, done_after=2)
    assert task.state is TaskState.CREATED
    task.initialize()
    assert task.state is TaskState.RUNNING
    task.update()
    assert not task.is_done
    task.update()
    assert task.is_done
    assert task.finish() is TaskResult.SUCCESS
    assert task.state is TaskState.DONE
    assert task.result is TaskResult.SUCCESS
    assert log == ["a.initialize", "a.update", "a.update", "a.finish"]


def test_finish_before_done_is_failure():
    task = RecordingTask("a", [], done_after=None)
    task.initialize()
    task.update()
    assert task.finish() is TaskResult.FAILURE


def test_update_after_finish_raises():
    task = RecordingTask("a", [])
    task.initialize()
    task.update()
    task.finish()
    with pytest.raises(TaskLifecycleError):
        task.update()
    assert task.updates == 1


@pytest.mark.parametrize("call", ["update", "finish"])
def test_calls_before_initialize_raise(call):
    task = RecordingTask("a", [])
    with pytest.raises(TaskLifecycleError):
        getattr(task, call)()


def test_double_initialize_and_double_finish_raise():
    task = RecordingTask("a", [])
    task.initialize()
    with pytest.raises(TaskLifecycleError):
        task.initialize()
    task.finish()
    with pytest.raises(TaskLifecycleError):
        task.finish()
    assert task.finishes == 1


def test_update_is_noop_once_done():
    task = RecordingTask("a", [], done_after=1)
    task.initialize()
    task.update()
    task.update()
    assert task.updates == 1


def test_expand_winch(winch):
    task = ExpandWinchTask(winch, 850)
    task.initialize()
    assert winch.target == 850.0
    task.update()
    assert task.is_done
    assert task.finish() is TaskResult.SUCCESS


def test_await_status_waits_forever_with_zero_timeout(winch, clock):
    task = AwaitStatusTask.for_winch(winch, 0, clock=clock)
    task.initialize()
    for _ in range(5):
        clock.advance(100.0)
        task.update()
    assert not task.is_done
    winch.in_position = True
    task.update()
    assert task.is_done
    assert task.finish() is TaskResult.SUCCESS
    assert task.status is Status.WINCH_IN_POSITION


def test_await_status_timeout_is_failure(shooter, clock):
    task = AwaitStatusTask.for_shooter_speed(shooter, 2.0, clock=clock)
    task.initialize()
    clock.advance(1.0)
    task.update()
    assert not task.is_done
    clock.advance(1.5)
    task.update()
    assert task.is_done
    assert task.finish() is TaskResult.FAILURE


def test_await_status_rejects_negative_timeout(winch):
    with pytest.raises(ValueError):
        AwaitStatusTask.for_winch(winch, -1)


def test_wait_task(clock):
    task = WaitTask(1.5, clock=clock)
    task.initialize()
    clock.advance(1.0)
    task.update()
    assert not task.is_done
    clock.advance(0.5)
    task.update()
    assert task.is_done


def test_turn_degrees_right(drive, gyro):
    gyro.heading = 90.0
    task = TurnDegreesTask(drive, gyro, 10.0, 0.3, 1.0)
    task.initialize()
    assert task.goal_deg == 100.0
    task.update()
    assert drive.turns == [0.3]
    gyro.heading = 99.5
    task.update()
    assert task.is_done
    assert task.finish() is TaskResult.SUCCESS
    assert drive.stops >= 1


def test_turn_degrees_left_clamps_speed(drive, gyro):
    task = TurnDegreesTask(drive, gyro, -20.0, -5.0, 1.0)
    task.initialize()
    task.update()
    assert drive.turns == [-1.0]


def test_turn_degrees_cancel_stops_drive(drive, gyro):
    task = TurnDegreesTask(drive, gyro, 45.0, 0.2, 1.0)
    task.initialize()
    task.update()
    assert task.finish() is TaskResult.FAILURE
    assert drive.stops == 1


def test_turn_degrees_needs_positive_tolerance(drive, gyro):
    with pytest.raises(ValueError):
        TurnDegreesTask(drive, gyro, 10.0, 0.2, 0.0)


def test_shooter_angle_task(shooter):
    task = SetShooterAngleTask(shooter, 30.0, 0.5)
    task.initialize()
    assert shooter.angle_target == 30.0
    task.update()
    assert not task.is_done
    shooter.angle = 29.7
    task.update()
    assert task.is_done


def test_shooter_speed_task(shooter):
    task = SetShooterSpeedTask(shooter, 3000.0, 100.0)
    task.initialize()
    assert shooter.speed_target == 3000.0
    shooter.rpm = 2950.0
    task.update()
    assert task.finish() is TaskResult.SUCCESS

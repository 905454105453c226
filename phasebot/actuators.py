"""Actuator and sensor surfaces the core talks to.

The core only knows these calls exist and that they are synchronous and
fire-and-forget. Wiring them to motor controllers, relays and encoders is the
job of the robot layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


class Drive(Protocol):
    def turn(self, speed: float) -> None:
        """Spin in place; positive turns right."""

    def stop(self) -> None: ...


class HeadingSensor(Protocol):
    def heading_deg(self) -> float:
        """Accumulated gyro heading, positive to the right."""


class Winch(Protocol):
    def set_winch_target(self, target: float) -> None: ...

    def is_winch_in_position(self) -> bool: ...


class Shooter(Protocol):
    def set_angle_target(self, angle_deg: float) -> None: ...

    def angle_deg(self) -> float: ...

    def is_in_position(self) -> bool: ...

    def set_speed_target(self, rpm: float) -> None: ...

    def speed_rpm(self) -> float: ...

    def is_at_speed(self) -> bool: ...

    def stop(self) -> None: ...


@dataclass
class RobotIO:
    """The actuator/sensor handles handed to tasks, phases and controllers."""

    drive: Optional[Drive] = None
    gyro: Optional[HeadingSensor] = None
    winch: Optional[Winch] = None
    shooter: Optional[Shooter] = None

    def require(self, name: str):
        device = getattr(self, name)
        if device is None:
            raise ValueError(f"RobotIO has no {name} attached")
        return device

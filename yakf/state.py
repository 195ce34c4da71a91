"""
yakf - State Abstraction
========================

Any user-defined state type works with the filter as long as it exposes its
vector and epoch and can be advanced through a dynamics function.

Epochs are either datetime.datetime (durations are datetime.timedelta) or
plain numbers of seconds. Dynamics functions always receive dt in seconds.

Example:
    >>> s = TimedState(np.array([-5.0, 1.0]), epoch=0.0)
    >>> s.propagate(lambda x, u, dt: np.array([x[0] + x[1]*dt, x[1]]), 1.0)
    >>> s.state(), s.epoch()
    (array([-4.,  1.]), 1.0)

License: MIT
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Union

import numpy as np

Duration = Union[timedelta, float]
DynamicsFn = Callable[[np.ndarray, Any, float], np.ndarray]


def duration_seconds(dt: Duration) -> float:
    """Convert a timedelta or a number of seconds to float seconds."""
    if isinstance(dt, timedelta):
        return dt.total_seconds()
    return float(dt)


class State(ABC):
    """
    Capability contract for filter states.

    Subclasses store an n-dimensional vector and an epoch. The filter keeps
    a private deep copy of the initial state, so implementations should be
    copyable with copy.deepcopy.
    """

    @abstractmethod
    def state(self) -> np.ndarray:
        """Current state vector [n]"""

    @abstractmethod
    def set_state(self, state: np.ndarray) -> None:
        """Overwrite the state vector"""

    @abstractmethod
    def epoch(self) -> Any:
        """Timestamp of the state"""

    @abstractmethod
    def set_epoch(self, epoch: Any) -> None:
        """Overwrite the timestamp"""

    def propagate(self, dynamics: DynamicsFn, dt: Duration, exogenous: Any = None) -> None:
        """
        Advance the state through dynamics(x, exogenous, dt_seconds).

        The vector is replaced by the dynamics output and the epoch moves
        forward by dt.
        """
        x_next = dynamics(self.state(), exogenous, duration_seconds(dt))
        self.set_state(np.asarray(x_next, dtype=np.float64))
        self.set_epoch(self.epoch() + dt)


@dataclass
class TimedState(State):
    """Plain vector + epoch state"""
    x: np.ndarray
    t: Any = 0.0
    n: int = field(init=False)

    def __post_init__(self):
        self.x = np.asarray(self.x, dtype=np.float64).reshape(-1)
        self.n = len(self.x)

    @classmethod
    def zeros(cls, dim: int, epoch: Any = 0.0) -> "TimedState":
        return cls(np.zeros(dim), epoch)

    def state(self) -> np.ndarray:
        return self.x

    def set_state(self, state: np.ndarray) -> None:
        self.x = np.asarray(state, dtype=np.float64).reshape(-1)
        self.n = len(self.x)

    def epoch(self) -> Any:
        return self.t

    def set_epoch(self, epoch: Any) -> None:
        self.t = epoch

    def copy(self) -> "TimedState":
        return copy.deepcopy(self)

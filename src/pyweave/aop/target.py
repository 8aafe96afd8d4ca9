# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Target sources — where a proxy obtains the object a call runs on.

A proxy never holds its target directly.  It asks its target source on
every call, which allows pooling, per-thread instances, hot swapping and
lazy initialization behind an unchanged proxy.  Non-static sources get each
target back through :meth:`TargetSource.release_target` after the call.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import structlog

from pyweave.context.bean_factory import BeanFactory
from pyweave.kernel.exceptions import AopConfigException, AopInvocationException

logger = structlog.get_logger("pyweave.aop.target")


def _safe_hash(obj: Any) -> int:
    try:
        return hash(obj)
    except TypeError:
        return id(obj)


class TargetSource(ABC):
    """Supplies targets to a proxy."""

    @abstractmethod
    def get_target_class(self) -> type | None: ...

    @property
    def is_static(self) -> bool:
        """Whether every ``get_target`` returns the same object."""
        return False

    @abstractmethod
    def get_target(self) -> Any: ...

    def release_target(self, target: Any) -> None:
        """Return a target obtained from :meth:`get_target`."""


class EmptyTargetSource(TargetSource):
    """Target source without a target, for proxies answered entirely by advice."""

    INSTANCE: ClassVar[EmptyTargetSource]

    def __init__(self, target_class: type | None = None, is_static: bool = True) -> None:
        self._target_class = target_class
        self._is_static = is_static

    @classmethod
    def for_class(cls, target_class: type | None, is_static: bool = True) -> EmptyTargetSource:
        if target_class is None and is_static:
            return cls.INSTANCE
        return cls(target_class, is_static)

    def get_target_class(self) -> type | None:
        return self._target_class

    @property
    def is_static(self) -> bool:
        return self._is_static

    def get_target(self) -> Any:
        return None

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, EmptyTargetSource)
            and self._target_class is other._target_class
            and self._is_static == other._is_static
        )

    def __hash__(self) -> int:
        return hash((EmptyTargetSource, self._target_class))

    def __repr__(self) -> str:
        name = self._target_class.__qualname__ if self._target_class else "no target class"
        return f"EmptyTargetSource: {name}, {'static' if self._is_static else 'dynamic'}"


EmptyTargetSource.INSTANCE = EmptyTargetSource()


class SingletonTargetSource(TargetSource):
    """Always returns the same target: the default for proxies over an instance."""

    def __init__(self, target: Any) -> None:
        if target is None:
            raise ValueError("Target object must not be None")
        self.target = target

    def get_target_class(self) -> type | None:
        return type(self.target)

    @property
    def is_static(self) -> bool:
        return True

    def get_target(self) -> Any:
        return self.target

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, SingletonTargetSource):
            return False
        return self.target is other.target or self.target == other.target

    def __hash__(self) -> int:
        return _safe_hash(self.target)

    def __repr__(self) -> str:
        return f"SingletonTargetSource for target object [{self.target!r}]"


class HotSwappableTargetSource(TargetSource):
    """Target source whose target can be replaced while proxies are in use.

    Usage::

        swapper = HotSwappableTargetSource(primary)
        proxy = ProxyFactory.for_target_source(swapper)   # calls go to primary
        swapper.swap(fallback)                             # now to fallback
    """

    def __init__(self, initial_target: Any) -> None:
        if initial_target is None:
            raise ValueError("Target object must not be None")
        self._target = initial_target
        self._lock = threading.Lock()

    def get_target_class(self) -> type | None:
        with self._lock:
            return type(self._target)

    def get_target(self) -> Any:
        with self._lock:
            return self._target

    def swap(self, new_target: Any) -> Any:
        """Replace the target and return the old one."""
        if new_target is None:
            raise ValueError("Target object must not be None")
        with self._lock:
            old = self._target
            self._target = new_target
        logger.debug("target_swapped", old=type(old).__qualname__, new=type(new_target).__qualname__)
        return old

    def __eq__(self, other: object) -> bool:
        return isinstance(other, HotSwappableTargetSource) and self.get_target() is other.get_target()

    def __hash__(self) -> int:
        return hash(HotSwappableTargetSource)

    def __repr__(self) -> str:
        return f"HotSwappableTargetSource for target: {self.get_target()!r}"


# ---------------------------------------------------------------------------
# Bean factory based target sources
# ---------------------------------------------------------------------------


class AbstractBeanFactoryBasedTargetSource(TargetSource):
    """Target source that obtains targets from a bean definition.

    The bean definition named *target_bean_name* should describe a
    non-singleton bean, since each source decides itself how many instances
    to create and when.
    """

    def __init__(self, target_bean_name: str, target_class: type | None = None) -> None:
        self.target_bean_name = target_bean_name
        self._target_class = target_class
        self._bean_factory: BeanFactory | None = None

    def set_bean_factory(self, bean_factory: BeanFactory) -> None:
        self._bean_factory = bean_factory

    @property
    def bean_factory(self) -> BeanFactory:
        if self._bean_factory is None:
            raise AopConfigException(
                f"{type(self).__name__} for bean '{self.target_bean_name}' has no bean factory",
                context={"bean": self.target_bean_name},
            )
        return self._bean_factory

    def get_target_class(self) -> type | None:
        if self._target_class is None and self._bean_factory is not None:
            self._target_class = self._bean_factory.get_type(self.target_bean_name)
        return self._target_class

    def new_prototype_instance(self) -> Any:
        logger.debug("creating_target", bean=self.target_bean_name, source=type(self).__name__)
        return self.bean_factory.create_bean(self.target_bean_name)

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return False
        return self.target_bean_name == other.target_bean_name  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self.target_bean_name))

    def __repr__(self) -> str:
        return f"{type(self).__name__} for target bean '{self.target_bean_name}'"


class PrototypeTargetSource(AbstractBeanFactoryBasedTargetSource):
    """A fresh target for every call."""

    def get_target(self) -> Any:
        return self.new_prototype_instance()


class LazyInitTargetSource(AbstractBeanFactoryBasedTargetSource):
    """Creates the target on first use and keeps it."""

    def __init__(self, target_bean_name: str, target_class: type | None = None) -> None:
        super().__init__(target_bean_name, target_class)
        self._target: Any = None
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._target is not None

    def get_target(self) -> Any:
        if self._target is None:
            with self._lock:
                if self._target is None:
                    self._target = self.new_prototype_instance()
                    self.post_process_target_object(self._target)
        return self._target

    def post_process_target_object(self, target: Any) -> None:
        """Hook for subclasses, run once on the freshly created target."""


class ThreadLocalTargetSource(AbstractBeanFactoryBasedTargetSource):
    """One target per thread, created on that thread's first call."""

    def __init__(self, target_bean_name: str, target_class: type | None = None) -> None:
        super().__init__(target_bean_name, target_class)
        self._local = threading.local()
        self._targets: list[Any] = []
        self._lock = threading.Lock()
        self.invocation_count = 0
        self.hit_count = 0

    @property
    def object_count(self) -> int:
        with self._lock:
            return len(self._targets)

    @property
    def miss_count(self) -> int:
        return self.invocation_count - self.hit_count

    def get_target(self) -> Any:
        with self._lock:
            self.invocation_count += 1
        target = getattr(self._local, "target", None)
        if target is not None:
            with self._lock:
                self.hit_count += 1
            return target
        target = self.new_prototype_instance()
        self._local.target = target
        with self._lock:
            self._targets.append(target)
        return target

    def destroy(self) -> None:
        """Forget every per-thread target."""
        with self._lock:
            self._targets.clear()
        self._local = threading.local()

    def get_stats(self) -> dict[str, int]:
        return {
            "invocations": self.invocation_count,
            "hits": self.hit_count,
            "misses": self.miss_count,
            "objects": self.object_count,
        }


class SimplePoolTargetSource(AbstractBeanFactoryBasedTargetSource):
    """Bounded pool of targets.

    Idle targets are reused; new ones are created until *max_size* targets
    are active.  When the pool is exhausted a caller waits up to *max_wait*
    seconds (forever when None) for a target to be released.

    Raises:
        AopInvocationException: From :meth:`get_target` when no target
            became available within *max_wait*.
    """

    def __init__(
        self,
        target_bean_name: str,
        target_class: type | None = None,
        max_size: int = 8,
        max_wait: float | None = None,
    ) -> None:
        super().__init__(target_bean_name, target_class)
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.max_wait = max_wait
        self._idle: list[Any] = []
        self._active = 0
        self._condition = threading.Condition()

    @property
    def active_count(self) -> int:
        with self._condition:
            return self._active

    @property
    def idle_count(self) -> int:
        with self._condition:
            return len(self._idle)

    def get_target(self) -> Any:
        deadline = None if self.max_wait is None else time.monotonic() + self.max_wait
        with self._condition:
            while not self._idle and self._active >= self.max_size:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise AopInvocationException(
                        f"Pool for bean '{self.target_bean_name}' exhausted ({self.max_size} active targets)",
                        context={"bean": self.target_bean_name, "max_size": self.max_size},
                    )
                self._condition.wait(remaining)
            self._active += 1
            if self._idle:
                return self._idle.pop()
        try:
            return self.new_prototype_instance()
        except BaseException:
            with self._condition:
                self._active -= 1
                self._condition.notify()
            raise

    def release_target(self, target: Any) -> None:
        with self._condition:
            self._active -= 1
            self._idle.append(target)
            self._condition.notify()

    def destroy(self) -> None:
        with self._condition:
            self._idle.clear()

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
"""Tests for target sources."""

from __future__ import annotations

import itertools
import threading

import pytest

from pyweave.aop.proxy import ProxyFactory
from pyweave.aop.target import (
    EmptyTargetSource,
    HotSwappableTargetSource,
    LazyInitTargetSource,
    PrototypeTargetSource,
    SimplePoolTargetSource,
    SingletonTargetSource,
    ThreadLocalTargetSource,
)
from pyweave.context.bean_factory import StaticBeanFactory
from pyweave.kernel.exceptions import AopConfigException, AopInvocationException

_ids = itertools.count(1)


class Worker:
    created: list[Worker] = []

    def __init__(self) -> None:
        self.worker_id = next(_ids)
        Worker.created.append(self)

    def ident(self) -> int:
        return self.worker_id


class Primary:
    def name(self) -> str:
        return "primary"


class Fallback(Primary):
    def name(self) -> str:
        return "fallback"


@pytest.fixture(autouse=True)
def _reset_workers():
    Worker.created.clear()
    yield
    Worker.created.clear()


def _factory() -> StaticBeanFactory:
    factory = StaticBeanFactory()
    factory.register_definition("worker", Worker, singleton=False)
    return factory


def _bound(source):
    source.set_bean_factory(_factory())
    return source


class TestSimpleTargetSources:
    def test_singleton_target_source(self) -> None:
        worker = Worker()
        source = SingletonTargetSource(worker)

        assert source.is_static
        assert source.get_target() is worker
        assert source.get_target_class() is Worker
        assert source == SingletonTargetSource(worker)

    def test_singleton_rejects_none(self) -> None:
        with pytest.raises(ValueError):
            SingletonTargetSource(None)

    def test_empty_target_source(self) -> None:
        assert EmptyTargetSource.for_class(None) is EmptyTargetSource.INSTANCE
        source = EmptyTargetSource.for_class(Worker)
        assert source.get_target() is None
        assert source.get_target_class() is Worker
        assert repr(source) == "EmptyTargetSource: Worker, static"


class TestHotSwappableTargetSource:
    def test_swap_redirects_live_proxy(self) -> None:
        primary, fallback = Primary(), Fallback()
        swapper = HotSwappableTargetSource(primary)
        proxy = ProxyFactory.for_target_source(swapper)

        assert proxy.name() == "primary"
        old = swapper.swap(fallback)

        assert old is primary
        assert proxy.name() == "fallback"
        assert swapper.get_target_class() is Fallback

    def test_swap_rejects_none(self) -> None:
        swapper = HotSwappableTargetSource(Primary())
        with pytest.raises(ValueError):
            swapper.swap(None)


class TestBeanFactoryBasedTargetSources:
    def test_missing_bean_factory(self) -> None:
        source = PrototypeTargetSource("worker", Worker)
        with pytest.raises(AopConfigException, match="has no bean factory"):
            source.get_target()

    def test_target_class_taken_from_bean_factory(self) -> None:
        source = _bound(PrototypeTargetSource("worker"))
        assert source.get_target_class() is Worker

    def test_prototype_creates_target_per_call(self) -> None:
        proxy = ProxyFactory.for_target_source(_bound(PrototypeTargetSource("worker")))

        first, second = proxy.ident(), proxy.ident()

        assert first != second
        assert len(Worker.created) == 2

    def test_lazy_init_creates_on_first_use(self) -> None:
        source = _bound(LazyInitTargetSource("worker", Worker))
        proxy = ProxyFactory.for_target_source(source)

        assert not source.is_initialized
        assert Worker.created == []

        first = proxy.ident()

        assert source.is_initialized
        assert proxy.ident() == first
        assert len(Worker.created) == 1

    def test_lazy_init_post_process_hook(self) -> None:
        seen = []

        class Tracking(LazyInitTargetSource):
            def post_process_target_object(self, target):
                seen.append(target)

        source = _bound(Tracking("worker", Worker))
        target = source.get_target()
        source.get_target()

        assert seen == [target]

    def test_equality_by_bean_name_and_type(self) -> None:
        assert PrototypeTargetSource("worker") == PrototypeTargetSource("worker")
        assert PrototypeTargetSource("worker") != LazyInitTargetSource("worker")
        assert repr(PrototypeTargetSource("worker")) == "PrototypeTargetSource for target bean 'worker'"


class TestThreadLocalTargetSource:
    def test_one_target_per_thread(self) -> None:
        source = _bound(ThreadLocalTargetSource("worker", Worker))
        proxy = ProxyFactory.for_target_source(source)
        seen: dict[str, int] = {}

        def call(name: str) -> None:
            proxy.ident()
            seen[name] = proxy.ident()

        threads = [threading.Thread(target=call, args=(f"t{i}",)) for i in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        main_id = proxy.ident()

        assert len(set(seen.values())) == 3
        assert main_id not in seen.values()
        assert source.object_count == 4

    def test_stats(self) -> None:
        source = _bound(ThreadLocalTargetSource("worker", Worker))
        source.get_target()
        source.get_target()
        source.get_target()

        assert source.get_stats() == {"invocations": 3, "hits": 2, "misses": 1, "objects": 1}

    def test_destroy_forgets_targets(self) -> None:
        source = _bound(ThreadLocalTargetSource("worker", Worker))
        first = source.get_target()
        source.destroy()

        assert source.object_count == 0
        assert source.get_target() is not first


class TestSimplePoolTargetSource:
    def test_targets_reused_after_release(self) -> None:
        pool = _bound(SimplePoolTargetSource("worker", Worker, max_size=2))
        proxy = ProxyFactory.for_target_source(pool)

        ids = {proxy.ident() for _ in range(5)}

        assert len(ids) == 1
        assert pool.active_count == 0
        assert pool.idle_count == 1

    def test_exhausted_pool_times_out(self) -> None:
        pool = _bound(SimplePoolTargetSource("worker", Worker, max_size=2, max_wait=0.01))
        first, second = pool.get_target(), pool.get_target()

        with pytest.raises(AopInvocationException, match="exhausted"):
            pool.get_target()

        pool.release_target(first)
        assert pool.get_target() is first
        assert second is not first

    def test_waiting_caller_gets_released_target(self) -> None:
        pool = _bound(SimplePoolTargetSource("worker", Worker, max_size=1, max_wait=5))
        held = pool.get_target()
        result = []

        waiter = threading.Thread(target=lambda: result.append(pool.get_target()))
        waiter.start()
        pool.release_target(held)
        waiter.join(timeout=5)

        assert result == [held]

    def test_failed_creation_frees_slot(self) -> None:
        factory = StaticBeanFactory()

        def boom():
            raise RuntimeError("cannot create")

        factory.register_definition("broken", Worker, factory=boom, singleton=False)
        pool = SimplePoolTargetSource("broken", Worker, max_size=1, max_wait=0)
        pool.set_bean_factory(factory)

        with pytest.raises(RuntimeError):
            pool.get_target()
        assert pool.active_count == 0

    def test_max_size_validated(self) -> None:
        with pytest.raises(ValueError):
            SimplePoolTargetSource("worker", max_size=0)

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
"""Tests for StaticBeanFactory — the in-memory bean factory."""

from __future__ import annotations

import pytest

from pyweave.container.exceptions import BeanCreationException, NoSuchBeanError
from pyweave.context.bean_factory import BeanFactory, StaticBeanFactory


class Engine:
    def __init__(self) -> None:
        self.car: Car | None = None


class Car:
    def __init__(self) -> None:
        self.engine: Engine | None = None


class Recording:
    """Post-processor recording every callback."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def before_init(self, bean, bean_name):
        self.events.append(("before_init", bean_name))
        return bean

    def after_init(self, bean, bean_name):
        self.events.append(("after_init", bean_name))
        return bean


class Wrapped:
    def __init__(self, inner) -> None:
        self.inner = inner


class EarlyWrapping:
    """Smart post-processor wrapping every bean, early references included."""

    def __init__(self) -> None:
        self.early: dict[str, Wrapped] = {}

    def before_instantiation(self, bean_class, bean_name):
        return None

    def predict_bean_type(self, bean_class, bean_name):
        return Wrapped if bean_name == "car" else None

    def get_early_bean_reference(self, bean, bean_name):
        wrapped = Wrapped(bean)
        self.early[bean_name] = wrapped
        return wrapped

    def before_init(self, bean, bean_name):
        return bean

    def after_init(self, bean, bean_name):
        early = self.early.pop(bean_name, None)
        if early is not None and early.inner is bean:
            return early
        return Wrapped(bean)


def _wire_car(car: Car, factory: StaticBeanFactory) -> None:
    car.engine = factory.get_bean("engine")


def _wire_engine(engine: Engine, factory: StaticBeanFactory) -> None:
    engine.car = factory.get_bean("car")


class TestRegistration:
    def test_implements_bean_factory(self):
        assert isinstance(StaticBeanFactory(), BeanFactory)

    def test_registered_singleton_returned_as_is(self):
        factory = StaticBeanFactory()
        recording = Recording()
        factory.add_bean_post_processor(recording)
        engine = Engine()
        factory.register_singleton("engine", engine)

        assert factory.get_bean("engine") is engine
        assert factory.get_type("engine") is Engine
        assert recording.events == []

    def test_definitions_create_singletons_once(self):
        factory = StaticBeanFactory()
        factory.register_definition("engine", Engine)

        assert factory.get_bean("engine") is factory.get_bean("engine")

    def test_prototype_definitions(self):
        factory = StaticBeanFactory()
        factory.register_definition("engine", Engine, singleton=False)

        assert factory.get_bean("engine") is not factory.get_bean("engine")

    def test_factory_callable(self):
        factory = StaticBeanFactory()
        engine = Engine()
        factory.register_definition("engine", Engine, factory=lambda: engine)

        assert factory.get_bean("engine") is engine

    def test_bean_attributes(self):
        factory = StaticBeanFactory()
        factory.register_definition("engine", Engine, lazy_init=True)

        assert factory.get_bean_attribute("engine", "lazy_init") is True
        factory.set_bean_attribute("engine", "lazy_init", False)
        assert factory.get_bean_attribute("engine", "lazy_init") is False
        assert factory.get_bean_attribute("missing", "lazy_init", "n/a") == "n/a"

    def test_names_and_beans_for_type(self):
        factory = StaticBeanFactory()
        factory.register_definition("engine", Engine)
        factory.register_definition("car", Car)

        assert factory.get_bean_names_for_type(Engine) == ["engine"]
        assert factory.get_bean_names_for_type(object) == ["engine", "car"]
        assert list(factory.get_beans_of_type(Car)) == ["car"]

    def test_unknown_bean_suggests_names(self):
        factory = StaticBeanFactory()
        factory.register_definition("engine", Engine)

        with pytest.raises(NoSuchBeanError) as exc_info:
            factory.get_bean("engin")

        assert exc_info.value.suggestions == ["engine"]
        assert exc_info.value.code == "BEAN_CREATION"
        assert not factory.contains_bean("engin")
        assert factory.get_type("engin") is None


class TestLifecycle:
    def test_post_processors_called_in_order(self):
        factory = StaticBeanFactory()
        recording = Recording()
        factory.add_bean_post_processor(recording)
        factory.register_definition("engine", Engine)

        factory.get_bean("engine")

        assert recording.events == [("before_init", "engine"), ("after_init", "engine")]

    def test_create_bean_skips_post_processors(self):
        factory = StaticBeanFactory()
        recording = Recording()
        factory.add_bean_post_processor(recording)
        factory.register_definition("engine", Engine)

        first, second = factory.create_bean("engine"), factory.create_bean("engine")

        assert first is not second
        assert recording.events == []

    def test_preinstantiate_singletons(self):
        factory = StaticBeanFactory()
        recording = Recording()
        factory.add_bean_post_processor(recording)
        factory.register_definition("engine", Engine)
        factory.register_definition("spare", Engine, singleton=False)

        factory.preinstantiate_singletons()

        assert ("after_init", "engine") in recording.events
        assert ("after_init", "spare") not in recording.events

    def test_bean_factory_aware_post_processor(self):
        class Aware(Recording):
            def set_bean_factory(self, bean_factory):
                self.bean_factory = bean_factory

        factory = StaticBeanFactory()
        aware = Aware()
        factory.add_bean_post_processor(aware)

        assert aware.bean_factory is factory


class TestCircularReferences:
    def test_plain_circular_reference_resolves_to_raw_bean(self):
        factory = StaticBeanFactory()
        factory.register_definition("car", Car, populate=_wire_car)
        factory.register_definition("engine", Engine, populate=_wire_engine)

        car = factory.get_bean("car")

        assert car.engine.car is car

    def test_early_reference_matches_final_bean(self):
        factory = StaticBeanFactory()
        factory.add_bean_post_processor(EarlyWrapping())
        factory.register_definition("car", Car, populate=_wire_car)
        factory.register_definition("engine", Engine, populate=_wire_engine)

        car = factory.get_bean("car")

        assert isinstance(car, Wrapped)
        assert car.inner.engine.inner.car is car
        assert factory.is_currently_in_creation("car") is False

    def test_predicted_type_from_smart_post_processor(self):
        factory = StaticBeanFactory()
        factory.add_bean_post_processor(EarlyWrapping())
        factory.register_definition("car", Car)
        factory.register_definition("engine", Engine)

        assert factory.get_type("car") is Wrapped
        assert factory.get_type("engine") is Engine

    def test_request_during_instantiation_fails(self):
        factory = StaticBeanFactory()
        factory.register_definition("loop", Engine, factory=lambda: factory.get_bean("loop"))

        with pytest.raises(BeanCreationException, match="unresolvable circular reference"):
            factory.get_bean("loop")

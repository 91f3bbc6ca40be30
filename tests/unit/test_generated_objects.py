"""
End-to-end tests for generated classes and interfaces.

Tests cover:
- Property access, validation, notification and borrowing
- Constructors and construct-only properties
- Custom accessors, public methods and wrapper-side methods
- Lifecycle hooks
- Virtual dispatch through class and interface hierarchies
- Abstract, final and sync types
"""

import threading

import pytest

from gloam.runtime import ConstructError, ContractViolation, lookup_type

COUNTER = """
@gclass(ns="ObjectTest")
class Counter:
    count: Cell[int] = prop(get, set, minimum=0, maximum=10)
    label: RefCell[str] = prop(get, set, explicit_notify)
    level: Cell[u8] = prop(get, set, lax_validation, minimum=1, maximum=5, default=1)
    tag: OnceCell[str] = prop(get, set, construct_only)
    hits: int = 0

    @constructor
    def with_count(count: int):
        ...

    @constructor(fallible)
    def checked(count: int):
        return {"count": count}

    @public
    def bump(self) -> None:
        self.hits += 1
        self.count.set(self.count.get() + 1)

    @public(static)
    def limit() -> int:
        return 10

@methods(wrapper)
class CounterApi:
    def doubled(self) -> int:
        return self.count() * 2
"""


@pytest.fixture
def counter_cls(load_generated):
    return load_generated(COUNTER)["Counter"]


class TestProperties:
    def test_defaults(self, counter_cls):
        counter = counter_cls()

        assert counter.count() == 0
        assert counter.label() == ""
        assert counter.level() == 1
        assert counter.tag() == ""

    def test_set_and_get(self, counter_cls):
        counter = counter_cls(count=2, label="first")
        counter.set_count(7)

        assert counter.count() == 7
        assert counter.get_property("label") == "first"

    def test_strict_bounds(self, counter_cls):
        counter = counter_cls()

        with pytest.raises(ContractViolation):
            counter.set_count(11)
        with pytest.raises(ContractViolation):
            counter_cls(count=-1)
        assert counter.count() == 0

    def test_lax_bounds_clamp(self, counter_cls):
        counter = counter_cls()
        counter.set_level(9)

        assert counter.level() == 5

    def test_implicit_default_respects_bounds(self, load_generated):
        cls = load_generated(
            """
            @gclass(ns="ObjectTest")
            class Gauge:
                level: Cell[int] = prop(get, set, construct, minimum=5, maximum=20)
                spare: Cell[int] = prop(get, set, minimum=5, maximum=20)
            """
        )["Gauge"]
        gauge = cls()

        assert gauge.level() == 5
        assert gauge.spare() == 5
        assert gauge.pspec_level().default == 5

    def test_delegated_storage(self, load_generated):
        cls = load_generated(
            """
            from gloam.runtime import Cell

            class Inner:
                def __init__(self):
                    self.my_bool = Cell(False)

            @gclass(ns="ObjectTest")
            class Outer:
                inner: Inner = Inner()
                my_delegate: Cell[bool] = prop(get, set, storage="inner.my_bool")
            """
        )["Outer"]
        outer = cls(my_delegate=True)
        imp = outer.imp(cls)

        assert outer.my_delegate() is True
        assert imp.inner.my_bool.get() is True
        assert not hasattr(imp, "my_delegate")
        imp.inner.my_bool.set(False)
        assert outer.my_delegate() is False
        assert outer.pspec_my_delegate().field == "inner.my_bool"

    def test_wrong_type(self, counter_cls):
        with pytest.raises(ContractViolation):
            counter_cls().set_count("three")

    def test_unknown_property(self, counter_cls):
        with pytest.raises(ContractViolation):
            counter_cls(bogus=1)
        with pytest.raises(ContractViolation):
            counter_cls().get_property("bogus")

    def test_param_spec(self, counter_cls):
        pspec = counter_cls().pspec_count()

        assert pspec.name == "count"
        assert (pspec.minimum, pspec.maximum) == (0, 10)
        assert [p.name for p in counter_cls.list_properties()] == ["count", "label", "level", "tag"]

    def test_borrow_returns_live_value(self, counter_cls):
        counter = counter_cls(label="live")

        assert counter.borrow_label() == "live"
        with pytest.raises(ContractViolation):
            counter.borrow_property("count")

    def test_notify_on_every_set(self, counter_cls):
        counter = counter_cls()
        seen = []
        counter.connect_count_notify(lambda obj, pspec: seen.append(pspec.name))

        counter.set_count(3)
        counter.set_count(3)

        assert seen == ["count", "count"]

    def test_explicit_notify_only_on_change(self, counter_cls):
        counter = counter_cls()
        seen = []
        counter.connect_label_notify(lambda obj, pspec: seen.append(pspec.name))

        counter.set_label("a")
        counter.set_label("a")
        counter.set_label("b")

        assert seen == ["label", "label"]

    def test_notify_is_filtered_by_property(self, counter_cls):
        counter = counter_cls()
        seen = []
        counter.connect_notify(None, lambda obj, pspec: seen.append(pspec.name))
        counter.connect_label_notify(lambda obj, pspec: seen.append("label-only"))

        counter.set_count(1)
        counter.notify_label()

        assert seen == ["count", "label", "label-only"]

    def test_registered_type_name(self, counter_cls):
        info = lookup_type("ObjectTestCounter")

        assert info is not None
        assert info.cls is counter_cls


class TestConstruction:
    def test_construct_only(self, counter_cls):
        counter = counter_cls(tag="fixed")

        assert counter.tag() == "fixed"
        assert not hasattr(counter, "set_tag")
        with pytest.raises(ContractViolation):
            counter.set_property("tag", "other")

    def test_mapped_constructor(self, counter_cls):
        assert counter_cls.with_count(4).count() == 4

    def test_infallible_constructor_violation(self, counter_cls):
        with pytest.raises(ContractViolation):
            counter_cls.with_count(20)

    def test_fallible_constructor(self, counter_cls):
        assert counter_cls.checked(3).count() == 3
        with pytest.raises(ConstructError) as exc_info:
            counter_cls.checked(20)
        assert exc_info.value.type_name == "ObjectTestCounter"


class TestMethods:
    def test_public_method_forwarder(self, counter_cls):
        counter = counter_cls()
        counter.bump()
        counter.bump()

        assert counter.count() == 2
        assert counter.imp(counter_cls).hits == 2

    def test_static_public_method(self, counter_cls):
        assert counter_cls.limit() == 10

    def test_wrapper_side_method(self, counter_cls):
        assert counter_cls(count=4).doubled() == 8


class TestCustomAccessors:
    def test_imp_side_setter(self, load_generated):
        cls = load_generated(
            """
            @gclass(ns="ObjectTest")
            class Doubler:
                value: Cell[int] = prop(get, set="_")

                @setter
                def set_value(self, value: int):
                    self.value.set(value * 2)
            """
        )["Doubler"]
        doubler = cls()
        seen = []
        doubler.connect_value_notify(lambda obj, pspec: seen.append(pspec.name))

        doubler.set_value(2)

        assert doubler.value() == 4
        assert seen == ["value"]

    def test_wrapper_side_getter(self, load_generated):
        cls = load_generated(
            """
            @gclass(ns="ObjectTest")
            class Answer:
                value: Cell[int] = prop(get="_")

            @methods(wrapper)
            class AnswerApi:
                @getter("value")
                def read_value(self) -> int:
                    return 42
            """
        )["Answer"]

        assert cls().value() == 42

    def test_computed_property(self, load_generated):
        cls = load_generated(
            """
            @gclass(ns="ObjectTest")
            class Rect:
                width: Cell[int] = prop(get, set, default=2)
                area: Placeholder[int] = prop(get, computed)

                @getter
                def area(self) -> int:
                    return self.width.get() ** 2
            """
        )["Rect"]
        rect = cls(width=3)

        assert rect.area() == 9


class TestLifecycle:
    SOURCE = """
    @gclass(ns="ObjectTest")
    class Tracked:
        size: Cell[int] = prop(get, set)
        events: list = []

        def init(self):
            self.events.append("init")

        def constructed(self):
            self.events.append(f"constructed:{self.size.get()}")

        def dispose(self):
            self.events.append("dispose")

        def class_init(cls):
            cls.initialized = True
    """

    def test_hook_order(self, load_generated):
        cls = load_generated(self.SOURCE)["Tracked"]
        tracked = cls(size=3)
        tracked.dispose()
        tracked.dispose()

        assert tracked.imp(cls).events == ["init", "constructed:3", "dispose"]

    def test_class_init(self, load_generated):
        cls = load_generated(self.SOURCE)["Tracked"]

        assert cls.initialized is True


SHAPE = """
@gclass(ns="DispatchTest")
class Shape:
    @virt
    def area(self) -> float:
        return 0.0

    @virt
    def describe(self, prefix: str) -> str:
        return f"{prefix}: {self.obj.area()}"
"""

SQUARE = """
@gclass(ns="DispatchTest", extends=[Shape])
class Square:
    side: Cell[float] = prop(get, set, default=2.0)

    @virt(override)
    def area(self) -> float:
        return self.side.get() ** 2
"""

NAMED = """
@ginterface(ns="DispatchTest")
class Named:
    name: Placeholder[str] = prop(get)

    @virt
    def greeting(self) -> str:
        return "hello " + self.name()
"""

PERSON = """
@gclass(ns="DispatchTest", implements=[Named])
class Person:
    name: Cell[str] = prop(get, set, override_iface=Named)
"""

ROBOT = """
@gclass(ns="DispatchTest", implements=[Named])
class Robot:
    name: Cell[str] = prop(get, set, override_iface=Named)

    @virt(override_iface=Named)
    def greeting(self) -> str:
        return "beep " + self.name.get()
"""


class TestClassDispatch:
    @pytest.fixture
    def shapes(self, load_generated):
        namespace = load_generated(SHAPE)
        return load_generated(SQUARE, namespace)

    def test_default_implementation(self, shapes):
        assert shapes["Shape"]().area() == 0.0

    def test_override(self, shapes):
        square = shapes["Square"]()

        assert square.area() == 4.0
        square.set_side(3.0)
        assert square.area() == 9.0

    def test_inherited_default_dispatches_to_override(self, shapes):
        assert shapes["Square"]().describe("square") == "square: 4.0"

    def test_parent_implementation(self, shapes):
        square_cls = shapes["Square"]
        square = square_cls()

        assert square.imp(square_cls).parent_area() == 0.0

    def test_isinstance(self, shapes):
        assert isinstance(shapes["Square"](), shapes["Shape"])


class TestInterfaceDispatch:
    @pytest.fixture
    def named(self, load_generated):
        namespace = load_generated(NAMED)
        load_generated(PERSON, namespace)
        return load_generated(ROBOT, namespace)

    def test_interface_default(self, named):
        assert named["Person"](name="Ada").greeting() == "hello Ada"

    def test_interface_override(self, named):
        assert named["Robot"](name="R2").greeting() == "beep R2"

    def test_parent_is_interface_default(self, named):
        robot_cls = named["Robot"]
        robot = robot_cls(name="R2")

        assert robot.imp(robot_cls).parent_greeting() == "hello R2"

    def test_interface_property(self, named):
        person = named["Person"](name="Ada")

        assert isinstance(person, named["Named"])
        assert person.name() == "Ada"
        assert person.pspec_name().owner is named["Person"]


class TestTypeFlags:
    def test_abstract_type(self, load_generated):
        namespace = load_generated(
            """
            @gclass(ns="FlagTest", abstract)
            class Sized:
                size: Placeholder[int] = prop(get, abstract)
            """
        )
        load_generated(
            """
            @gclass(ns="FlagTest", extends=[Sized])
            class Unsized:
                pass
            """,
            namespace,
        )

        with pytest.raises(ContractViolation):
            namespace["Sized"]()
        with pytest.raises(ContractViolation):
            namespace["Unsized"]().size()

    def test_final_type(self, load_generated):
        cls = load_generated(
            """
            @gclass(ns="FlagTest", final)
            class Leaf:
                value: Cell[int] = prop(get, set)
            """
        )["Leaf"]

        assert cls(value=1).value() == 1
        with pytest.raises(TypeError):
            type("Branch", (cls,), {})

    def test_non_sync_object_is_bound_to_its_thread(self, load_generated):
        cls = load_generated(
            """
            @gclass(ns="FlagTest")
            class Local:
                value: Cell[int] = prop(get, set)
            """
        )["Local"]
        local = cls()
        errors = []

        def run():
            try:
                local.set_value(1)
            except ContractViolation as e:
                errors.append(e)

        thread = threading.Thread(target=run)
        thread.start()
        thread.join()

        assert len(errors) == 1

    def test_sync_object_is_shared(self, load_generated):
        cls = load_generated(
            """
            @gclass(ns="FlagTest", sync)
            class Shared:
                value: Mutex[int] = prop(get, set)
            """
        )["Shared"]
        shared = cls()

        thread = threading.Thread(target=shared.set_value, args=(5,))
        thread.start()
        thread.join()

        assert shared.value() == 5

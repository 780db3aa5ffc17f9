import logging
from unittest.mock import MagicMock, call

from ioctree import Container, ContainerOptions, Scope


class Foo: ...


class Bar: ...


def test_default_options_use_noop_debug():
    c = Container()
    c.bind_as_dynamic(Foo, lambda _: Foo())

    assert isinstance(c.get(Foo), Foo)
    assert c.options == ContainerOptions()


def test_debug_receives_registration_and_resolution_messages():
    debug = MagicMock()
    c = Container(ContainerOptions(debug=debug))
    c.bind_as_dynamic(Foo, lambda _: Foo(), scope=Scope.REQUEST)
    child = c.create_child()
    child.bind_as_dynamic(Bar, lambda _: Bar(), scope=Scope.TRANSIENT)

    c.get(Foo)
    child.get(Foo)
    child.get(Bar)

    assert debug.call_args_list == [
        call("Parent container registers service Foo with id di1 as a request scoped"),
        call("Child container registers service Bar with id di2 as a transient scoped"),
        call("Container resolved service Foo with id di1 as transient scoped"),
        call("Container resolved service Foo with id di1 as a request scoped"),
        call("Container resolved service Bar with id di2 as transient scoped"),
    ]


def test_ignored_scope_change_is_logged_as_warning(caplog):
    debug = MagicMock()
    c = Container(ContainerOptions(debug=debug))
    c.bind_as_dynamic(Foo, lambda _: Foo(), scope=Scope.TRANSIENT)
    child = c.create_child()

    with caplog.at_level(logging.DEBUG, logger="ioctree"):
        child.bind_as_dynamic(Foo, lambda _: Foo(), scope=Scope.REQUEST)

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "Changing scope in child container from transient to request will be ignored" in warnings[0].getMessage()
    debug.assert_called_with("Child container registers service Foo with id di1 as a transient scoped")


def test_no_warning_when_child_rebinds_mocked_service(caplog):
    c = Container()
    c.snapshot()
    c.mock(Foo, Foo())
    child = c.create_child()

    with caplog.at_level(logging.DEBUG, logger="ioctree"):
        child.bind_as_dynamic(Foo, lambda _: Foo(), scope=Scope.REQUEST)

    assert not [r for r in caplog.records if r.levelno == logging.WARNING]
    c.restore()


def test_trace_messages_go_to_stdlib_logger(caplog):
    c = Container()

    with caplog.at_level(logging.DEBUG, logger="ioctree"):
        c.bind_as_constant(Foo, Foo())

    assert "Container registers service Foo with id di1 as a singleton" in caplog.messages

from unittest import TestCase

from ..base import BaseProvider, InjectionError, InjectorError
from ..injection_context import InjectionContext, InjectionContextError
from ..settings import Settings


class LabelProvider(BaseProvider):
    def __init__(self):
        self.calls = 0

    def provide(self, settings, injector):
        self.calls += 1
        return settings.get_str("default_label")


class TestInjectionContext(TestCase):
    def setUp(self):
        self.test_key = "TEST"
        self.test_value = "VALUE"
        self.test_settings = {self.test_key: self.test_value}
        self.test_instance = InjectionContext(settings=self.test_settings)

    def test_settings_init(self):
        assert self.test_instance.scope_name == InjectionContext.ROOT_SCOPE
        assert self.test_instance.settings[self.test_key] == self.test_value

    def test_simple_scope(self):
        with self.assertRaises(InjectionContextError):
            self.test_instance.start_scope(None)
        with self.assertRaises(InjectionContextError):
            self.test_instance.start_scope(InjectionContext.ROOT_SCOPE)

        context = self.test_instance.start_scope("session", {"a": 1})
        assert context.scope_name == "session"
        assert context.settings["a"] == 1
        assert "a" not in self.test_instance.settings
        with self.assertRaises(InjectionContextError):
            context.start_scope(InjectionContext.ROOT_SCOPE)
        with self.assertRaises(InjectionContextError):
            context.start_scope("session")
        assert context.start_scope("admin").scope_name == "admin"

    def test_replace_settings(self):
        self.test_instance.settings = Settings({"other": 1})
        assert self.test_instance.settings["other"] == 1
        assert self.test_key not in self.test_instance.settings

    def test_inject_simple(self):
        assert self.test_instance.inject_or(str) is None
        assert self.test_instance.inject_or(str, default="d") == "d"
        with self.assertRaises(InjectorError):
            self.test_instance.inject(str)
        self.test_instance.injector.bind_instance(str, self.test_value)
        assert self.test_instance.inject(str) is self.test_value
        self.test_instance.injector.clear_binding(str)
        assert self.test_instance.inject_or(str) is None

    def test_inject_scope(self):
        context = self.test_instance.start_scope("session")
        context.injector.bind_instance(str, self.test_value)
        assert context.inject(str) is self.test_value
        assert self.test_instance.inject_or(str) is None

    def test_inject_wrong_type(self):
        self.test_instance.injector.bind_instance(int, "not an int")
        with self.assertRaises(InjectionError):
            self.test_instance.inject(int)

    def test_inject_without_typing(self):
        context = InjectionContext(enforce_typing=False)
        context.injector.bind_instance(int, "not an int")
        assert context.inject(int) == "not an int"
        assert context.start_scope("session").inject(int) == "not an int"

    def test_provider_sees_extra_settings(self):
        provider = LabelProvider()
        self.test_instance.injector.bind_provider(str, provider)
        assert self.test_instance.inject_or(str) is None
        assert self.test_instance.inject(str, {"default_label": "Alice"}) == "Alice"
        assert provider.calls == 2

        with self.assertRaises(ValueError):
            self.test_instance.injector.bind_provider(str, None)
        with self.assertRaises(ValueError):
            self.test_instance.injector.bind_instance(str, None)

"""
Tests for class and interface definition building.
"""

from gloam.core.errors import DiagnosticCode
from gloam.core.ir import ClassDefinition, InterfaceDefinition, TypeBase


class TestClassOptions:
    def test_defaults(self, compile_text):
        definition = compile_text("@gclass\nclass Counter:\n    pass\n").definition

        assert isinstance(definition, ClassDefinition)
        assert definition.ext_trait == "CounterExt"
        assert definition.wrapper
        assert not definition.final
        assert definition.gtype_name == "Counter"

    def test_namespace_option_and_default(self, compile_text):
        tagged = compile_text("@gclass(ns='Demo')\nclass Counter:\n    pass\n", namespace="Other")
        untagged = compile_text("@gclass\nclass Counter:\n    pass\n", namespace="Other")

        assert tagged.definition.gtype_name == "DemoCounter"
        assert untagged.definition.gtype_name == "OtherCounter"

    def test_abstract_and_final(self, compile_text):
        result = compile_text("@gclass(abstract, final)\nclass Counter:\n    pass\n")

        assert result.diagnostics.codes() == [DiagnosticCode.DISALLOWED_COMBINATION] * 2

    def test_ext_trait_on_final(self, compile_text):
        result = compile_text("@gclass(final, ext_trait='CounterApi')\nclass Counter:\n    pass\n")

        assert result.diagnostics.messages() == ["`ext_trait` not allowed on final class"]

    def test_ext_trait_disabled(self, compile_text):
        definition = compile_text("@gclass(ext_trait=False)\nclass Counter:\n    pass\n").definition

        assert definition.ext_trait is None

    def test_abstract_property_on_final(self, compile_text):
        result = compile_text(
            """
            @gclass(final)
            class Leaf:
                size: Placeholder[int] = prop(get, abstract)
            """
        )

        assert result.diagnostics.messages() == ["Abstract property `size` not allowed on final class"]

    def test_extends_and_implements(self, compile_text):
        result = compile_text(
            """
            @gclass(extends=[Base], implements=[Named])
            class Derived:
                name: Cell[str] = prop(get, override_iface=Named)
            """
        )

        assert result.success, result.diagnostics.format()
        assert result.definition.extends == ["Base"]
        assert result.definition.implements == ["Named"]

    def test_unmet_interface(self, compile_text):
        result = compile_text("@gclass(implements=[Named])\nclass Derived:\n    pass\n")

        assert result.diagnostics.codes() == [DiagnosticCode.UNMET_CAPABILITY]

    def test_property_override_not_in_extends(self, compile_text):
        result = compile_text(
            """
            @gclass
            class Derived:
                size: Cell[int] = prop(get, override_class=Base)
            """
        )

        assert result.diagnostics.codes() == [DiagnosticCode.UNRESOLVED_REFERENCE]


class TestSync:
    def test_thread_safe_storage(self, compile_text):
        result = compile_text(
            """
            @gclass(sync)
            class Shared:
                value: Mutex[int] = prop(get, set)
                names: RwLock[list] = prop(get)
                total: Placeholder[int] = prop(get, computed)

                @getter
                def total(self) -> int:
                    return 0
            """
        )

        assert result.success, result.diagnostics.format()
        assert result.definition.sync

    def test_plain_cell_is_rejected(self, compile_text):
        result = compile_text("@gclass(sync)\nclass Shared:\n    value: Cell[int] = prop(get)\n")

        assert result.diagnostics.codes() == [DiagnosticCode.DISALLOWED_COMBINATION]
        assert "property `value` uses Cell" in result.diagnostics.messages()[0]


class TestInterfaceOptions:
    def test_requires(self, compile_text):
        definition = compile_text("@ginterface(requires=[Base])\nclass Named:\n    pass\n").definition

        assert isinstance(definition, InterfaceDefinition)
        assert definition.requires == ["Base"]
        assert not definition.final

    def test_class_only_option(self, compile_text):
        result = compile_text("@ginterface(final)\nclass Named:\n    pass\n")

        assert result.diagnostics.codes() == [DiagnosticCode.UNKNOWN_OPTION]


class TestOptionText:
    def test_extra_options(self, compile_text):
        definition = compile_text("@gclass\nclass Counter:\n    pass\n", options_text="final, ns='Demo'").definition

        assert definition.final
        assert definition.gtype_name == "DemoCounter"

    def test_duplicate_option(self, compile_text):
        result = compile_text("@gclass(final)\nclass Counter:\n    pass\n", options_text="final")

        assert result.diagnostics.codes() == [DiagnosticCode.MALFORMED_ATTRIBUTE]
        assert "(options)" in result.diagnostics.format()

    def test_kind_overrides_source(self, compile_text):
        result = compile_text("@gclass\nclass Counter:\n    pass\n", kind=TypeBase.INTERFACE)

        assert result.diagnostics.codes() == [DiagnosticCode.DISALLOWED_COMBINATION]
        assert isinstance(result.definition, InterfaceDefinition)

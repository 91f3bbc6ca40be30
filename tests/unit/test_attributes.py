"""
Tests for the attribute parser.

Tests cover:
- Flags, keyword values and positional binding
- Type paths and path lists
- Unknown, duplicate and malformed options
- Locations reported for raw option text
"""

import ast

from gloam.core.attributes import (
    ACCESSOR_OPTIONS,
    ACCUMULATOR_OPTIONS,
    CLASS_OPTIONS,
    PROPERTY_OPTIONS,
    SIGNAL_OPTIONS,
    AttributeParser,
    tag_name,
)
from gloam.core.errors import DiagnosticCode, Diagnostics
from gloam.core.ir import SourceLocation


def make_parser() -> tuple[AttributeParser, Diagnostics]:
    diagnostics = Diagnostics(file="attrs.py")
    return AttributeParser("attrs.py", diagnostics), diagnostics


def decorator(source: str) -> ast.expr:
    """First decorator of a one-line function under ``source``."""
    return ast.parse(f"{source}\ndef f(self): pass").body[0].decorator_list[0]


class TestFlagsAndValues:
    def test_bare_flags(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text("run_first, detailed", SIGNAL_OPTIONS)

        assert options.has("run_first")
        assert options.has("detailed")
        assert not options.has("action")
        assert not diagnostics

    def test_explicit_false_is_not_set(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text("connect=False", SIGNAL_OPTIONS)

        assert options.get("connect") is False
        assert not options.has("connect")
        assert not diagnostics

    def test_keyword_values(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text('name="my-prop", minimum=0, maximum=2.5, default=1', PROPERTY_OPTIONS)

        assert options.get("name") == "my-prop"
        assert options.get("minimum") == 0
        assert options.get("maximum") == 2.5
        assert options.get("default") == 1
        assert not diagnostics

    def test_accessor_forms(self):
        parser, _ = make_parser()

        assert parser.parse_text("get", PROPERTY_OPTIONS).get("get") is True
        assert parser.parse_text('get="read_it"', PROPERTY_OPTIONS).get("get") == "read_it"
        assert parser.parse_text('set="_"', PROPERTY_OPTIONS).get("set") == "_"

    def test_positional_binds_to_schema_option(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text('"clicked"', ACCUMULATOR_OPTIONS)

        assert options.get("signal") == "clicked"
        assert not diagnostics

    def test_positional_accessor_target(self):
        parser, _ = make_parser()
        options = parser.parse(decorator('@getter("count")'), ACCESSOR_OPTIONS)

        assert options.get("prop") == "count"

    def test_bare_decorator_has_no_options(self):
        parser, diagnostics = make_parser()
        options = parser.parse(decorator("@signal"), SIGNAL_OPTIONS)

        assert options.values == {}
        assert not diagnostics

    def test_decorator_location(self):
        parser, _ = make_parser()
        options = parser.parse(decorator("@signal(run_last)"), SIGNAL_OPTIONS)

        assert options.location("run_last") == SourceLocation(file="attrs.py", line=1, column=9)


class TestPaths:
    def test_path_list(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text("extends=[base.Widget], implements=[Named, ui.Sized]", CLASS_OPTIONS)

        assert options.get("extends") == ["base.Widget"]
        assert options.get("implements") == ["Named", "ui.Sized"]
        assert not diagnostics

    def test_path_list_call_form(self):
        parser, _ = make_parser()
        options = parser.parse_text("implements(Named, Sized)", CLASS_OPTIONS)

        assert options.get("implements") == ["Named", "Sized"]

    def test_single_path_becomes_list(self):
        parser, _ = make_parser()
        options = parser.parse_text("extends=Widget", CLASS_OPTIONS)

        assert options.get("extends") == ["Widget"]

    def test_invalid_path(self):
        parser, diagnostics = make_parser()
        parser.parse_text("extends=[1]", CLASS_OPTIONS)

        assert diagnostics.codes() == [DiagnosticCode.MALFORMED_ATTRIBUTE]


class TestErrors:
    def test_unknown_option(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text("run_first, bogus", SIGNAL_OPTIONS)

        assert options.has("run_first")
        assert diagnostics.codes() == [DiagnosticCode.UNKNOWN_OPTION]
        assert "bogus" in diagnostics.messages()[0]

    def test_unknown_option_location_in_text(self):
        parser, diagnostics = make_parser()
        parser.parse_text("run_first, bogus", SIGNAL_OPTIONS)

        location = diagnostics.items[0].location
        assert (location.line, location.column) == (1, 12)

    def test_duplicate_option(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text("detailed, detailed", SIGNAL_OPTIONS)

        assert options.has("detailed")
        assert diagnostics.codes() == [DiagnosticCode.MALFORMED_ATTRIBUTE]

    def test_wrong_value_kind_falls_back(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text("accumulator=3", SIGNAL_OPTIONS)

        assert "accumulator" not in options.values
        assert diagnostics.codes() == [DiagnosticCode.MALFORMED_ATTRIBUTE]

    def test_flag_requiring_value(self):
        parser, diagnostics = make_parser()
        parser.parse_text("minimum", PROPERTY_OPTIONS)

        assert diagnostics.codes() == [DiagnosticCode.MALFORMED_ATTRIBUTE]

    def test_syntax_error(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text("run_first,,", SIGNAL_OPTIONS)

        assert options.values == {}
        assert diagnostics.codes() == [DiagnosticCode.MALFORMED_ATTRIBUTE]

    def test_errors_do_not_stop_parsing(self):
        parser, diagnostics = make_parser()
        options = parser.parse_text("bogus, run_first, other", SIGNAL_OPTIONS)

        assert options.has("run_first")
        assert diagnostics.codes() == [DiagnosticCode.UNKNOWN_OPTION, DiagnosticCode.UNKNOWN_OPTION]


class TestTagName:
    def test_forms(self):
        assert tag_name(decorator("@signal")) == "signal"
        assert tag_name(decorator("@signal(run_first)")) == "signal"
        assert tag_name(decorator("@gloam.signal(run_first)")) == "signal"

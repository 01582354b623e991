"""Tests for C++ name normalization helpers."""

import unittest

from core.naming import innermost_scope, normalize_cpp_entity_name, qualify, split_qualified_name


class TestNaming(unittest.TestCase):
    def test_normalize_collapses_scope_spacing(self) -> None:
        self.assertEqual(normalize_cpp_entity_name("  ns :: Widget ::  draw "), "ns::Widget::draw")

    def test_normalize_destructor_spacing(self) -> None:
        self.assertEqual(normalize_cpp_entity_name("Foo:: ~Foo"), "Foo::~Foo")

    def test_normalize_collapses_whitespace(self) -> None:
        self.assertEqual(normalize_cpp_entity_name("unsigned   long\tint"), "unsigned long int")

    def test_split_on_last_separator(self) -> None:
        self.assertEqual(split_qualified_name("a::b::c"), ("a::b", "c"))
        self.assertEqual(split_qualified_name("plain"), ("", "plain"))

    def test_split_ignores_separators_inside_operator(self) -> None:
        self.assertEqual(
            split_qualified_name("Json::operator std::string"),
            ("Json", "operator std::string"),
        )
        self.assertEqual(split_qualified_name("JsonDoc::operator="), ("JsonDoc", "operator="))

    def test_split_identifier_containing_operator(self) -> None:
        self.assertEqual(split_qualified_name("ns::operator_count"), ("ns", "operator_count"))

    def test_qualify(self) -> None:
        self.assertEqual(qualify("N::C", "m"), "N::C::m")
        self.assertEqual(qualify("", "f"), "f")
        self.assertEqual(qualify("N", ""), "")

    def test_innermost_scope_drops_template_arguments(self) -> None:
        self.assertEqual(innermost_scope("ns::Vec<T>"), "Vec")
        self.assertEqual(innermost_scope("Widget"), "Widget")
        self.assertEqual(innermost_scope(""), "")


if __name__ == "__main__":
    unittest.main()

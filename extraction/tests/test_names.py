"""
Unit tests for names.py

Each name-recovery strategy is a pure text function and is tested on its own.
"""

import unittest

from extraction.names import (
    first_recovered,
    method_name_from_declaration_text,
    name_from_construct_text,
    name_from_declarator_text,
    name_from_qualified_identifier,
    operator_name_from_definition_text,
)


class TestDeclaratorText(unittest.TestCase):
    """Fallback B: names from raw declarator text."""

    def test_qualified_assignment_operator(self):
        self.assertEqual(
            name_from_declarator_text("JsonDoc::operator=(JsonDoc&& other) noexcept"),
            "JsonDoc::operator=",
        )

    def test_unqualified_assignment_operator(self):
        self.assertEqual(
            name_from_declarator_text("operator=(JsonDoc&& other) noexcept"),
            "operator=",
        )

    def test_qualified_subscript_operator(self):
        self.assertEqual(
            name_from_declarator_text("JsonValue::operator[](const std::string& key) const"),
            "JsonValue::operator[]",
        )

    def test_unqualified_subscript_operator(self):
        self.assertEqual(
            name_from_declarator_text("operator[](const std::string& key) const"),
            "operator[]",
        )

    def test_call_operator_keeps_its_parentheses(self):
        self.assertEqual(name_from_declarator_text("operator()(int x) const"), "operator()")

    def test_destructor(self):
        self.assertEqual(name_from_declarator_text("~JsonDoc()"), "~JsonDoc")

    def test_plain_function(self):
        self.assertEqual(name_from_declarator_text("someFunction(int a, int b)"), "someFunction")

    def test_template_arguments_are_dropped(self):
        self.assertEqual(name_from_declarator_text("make<int>(int a)"), "make")

    def test_identifier_containing_operator_is_not_an_operator(self):
        self.assertEqual(name_from_declarator_text("operator_count(int a)"), "operator_count")

    def test_empty_text(self):
        self.assertIsNone(name_from_declarator_text(""))
        self.assertIsNone(name_from_declarator_text("()"))


class TestQualifiedIdentifier(unittest.TestCase):
    def test_qualified(self):
        self.assertEqual(name_from_qualified_identifier("Foo :: bar"), "Foo::bar")

    def test_unqualified_is_rejected(self):
        self.assertIsNone(name_from_qualified_identifier("bar"))
        self.assertIsNone(name_from_qualified_identifier(""))


class TestDefinitionOperatorText(unittest.TestCase):
    """Fallback A: operator names from a whole definition."""

    def test_equality_operator(self):
        text = "bool operator==(const Point& other) const { return x == other.x; }"
        self.assertEqual(operator_name_from_definition_text(text), "operator==")

    def test_no_operator(self):
        self.assertIsNone(operator_name_from_definition_text("int add(int a, int b) { return a + b; }"))


class TestConstructText(unittest.TestCase):
    """Fallback C: names from a whole construct when there is no declarator."""

    def test_identifier_before_paren(self):
        self.assertEqual(name_from_construct_text("int compute (int x) { return x; }"), "compute")

    def test_qualified_identifier_before_paren(self):
        self.assertEqual(name_from_construct_text("void Widget::draw() const {}"), "Widget::draw")

    def test_operator_with_owner(self):
        text = "Matrix& Matrix::operator+=(const Matrix& o) { return *this; }"
        self.assertEqual(name_from_construct_text(text), "Matrix::operator+=")

    def test_no_paren(self):
        self.assertIsNone(name_from_construct_text("int value;"))


class TestMethodDeclarationText(unittest.TestCase):
    def test_destructor(self):
        self.assertEqual(method_name_from_declaration_text("~Widget()"), "~Widget")

    def test_operator(self):
        self.assertEqual(method_name_from_declaration_text("operator<<(std::ostream& os)"), "operator<<")

    def test_last_identifier(self):
        self.assertEqual(method_name_from_declaration_text("resize(size_t n)"), "resize")


class TestFirstRecovered(unittest.TestCase):
    def test_first_non_empty_wins(self):
        calls = []

        def strategy(value):
            def run():
                calls.append(value)
                return value
            return run

        name = first_recovered([strategy(None), strategy(""), strategy("found"), strategy("later")])
        self.assertEqual(name, "found")
        self.assertEqual(calls, [None, "", "found"])

    def test_all_fail(self):
        self.assertEqual(first_recovered([lambda: None]), "")


if __name__ == "__main__":
    unittest.main()

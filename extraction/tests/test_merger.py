"""
Unit tests for merger.py
"""

import logging
import unittest

from extraction.merger import merge_constructs, detect_conflicts
from extraction.models import Construct, ConstructKind, Parameter, SourceSpan


def make_construct(qualified_name, source_file="a.h", line=1, doc=None, params=0, kind=ConstructKind.METHOD):
    scope, _, name = qualified_name.rpartition("::")
    return Construct(
        kind=kind,
        name=name,
        qualified_name=qualified_name,
        enclosing_scope=scope,
        span=SourceSpan(start_line=line, end_line=line),
        source_file=source_file,
        return_type="void",
        parameters=[Parameter(type="int", name=f"p{i}") for i in range(params)],
        doc_comment=doc,
    )


class TestMergeConstructs(unittest.TestCase):
    """Test collapsing of duplicate occurrences."""

    def test_declaration_and_definition_collapse(self):
        decl = make_construct("Foo::bar", "foo.h", 10)
        defn = make_construct("Foo::bar", "foo.cpp", 42)

        result = merge_constructs([decl, defn])

        self.assertEqual(len(result.constructs), 1)
        merged = result.constructs[0]
        self.assertTrue(merged.merge_state.is_merged)
        self.assertEqual(merged.merge_state.source_locations, ["foo.h:10", "foo.cpp:42"])
        self.assertEqual(merged.source_file, "foo.h")
        self.assertEqual(result.conflict_count, 0)

    def test_docs_concatenate_in_order(self):
        first = make_construct("Foo::bar", "foo.h", 1, doc="A")
        second = make_construct("Foo::bar", "foo.cpp", 2, doc="B")

        merged = merge_constructs([first, second]).constructs[0]

        self.assertEqual(merged.doc_comment, "A\n\nB")
        self.assertEqual(merged.merge_state.doc_fragments, ["A", "B"])

    def test_missing_doc_on_one_side_is_not_a_conflict(self):
        first = make_construct("Foo::bar", "foo.h", 1, doc=None)
        second = make_construct("Foo::bar", "foo.cpp", 2, doc="Only here")

        result = merge_constructs([first, second])

        self.assertEqual(result.constructs[0].doc_comment, "Only here")
        self.assertEqual(result.conflicts, [])

    def test_conflicting_docs_are_reported_not_fatal(self):
        first = make_construct("Foo::bar", "foo.h", 1, doc="A")
        second = make_construct("Foo::bar", "foo.cpp", 2, doc="B")

        with self.assertLogs("extraction.merger", level=logging.WARNING) as captured:
            result = merge_constructs([first, second])

        self.assertEqual(len(result.constructs), 1)
        self.assertEqual(result.conflict_count, 1)
        self.assertIn("Different docstring content in foo.h:1 vs foo.cpp:2", result.conflicts[0].message)
        self.assertTrue(any("Found 1 docstring conflicts during merging" in line for line in captured.output))

    def test_parameter_count_mismatch(self):
        first = make_construct("Foo::bar", "foo.h", 1, params=1)
        second = make_construct("Foo::bar", "foo.cpp", 2, params=2)

        conflicts = detect_conflicts(first, second)

        self.assertEqual(len(conflicts), 1)
        self.assertEqual(conflicts[0].message, "Parameter count mismatch: 1 vs 2")

    def test_unnamed_constructs_never_merge(self):
        a = make_construct("", "a.h", 1, kind=ConstructKind.NAMESPACE)
        b = make_construct("", "a.h", 5, kind=ConstructKind.NAMESPACE)

        result = merge_constructs([a, b])

        self.assertEqual(len(result.constructs), 2)
        self.assertFalse(result.constructs[0].merge_state.is_merged)

    def test_order_follows_first_appearance(self):
        constructs = [
            make_construct("B::x", line=1),
            make_construct("A::y", line=2),
            make_construct("", line=3, kind=ConstructKind.NAMESPACE),
            make_construct("B::x", line=4),
            make_construct("C::z", line=5),
        ]

        result = merge_constructs(constructs)

        self.assertEqual([c.qualified_name for c in result.constructs], ["B::x", "A::y", "C::z", ""])

    def test_single_occurrence_is_untouched(self):
        only = make_construct("Foo::bar", doc="Doc")

        result = merge_constructs([only])

        self.assertIs(result.constructs[0], only)
        self.assertFalse(only.merge_state.is_merged)

    def test_inputs_are_not_mutated(self):
        first = make_construct("Foo::bar", "foo.h", 1, doc="A")
        second = make_construct("Foo::bar", "foo.cpp", 2, doc="B")

        merge_constructs([first, second])

        self.assertEqual(first.doc_comment, "A")
        self.assertFalse(first.merge_state.is_merged)


if __name__ == "__main__":
    unittest.main()

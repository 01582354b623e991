"""
Unit tests for association.py

Tests attaching parsed comment blocks to the declarations that follow them.
"""

import unittest

from extraction.association import (
    associate_docs_with_nodes,
    attach_docs_to_constructs,
    extract_namespace_path,
    find_declaration_nodes,
)
from extraction.comments import extract_docstring_blocks
from extraction.models import Construct, ConstructKind, SourceSpan
from extraction.parser import parse_bytes
from extraction.traversal import extract_constructs_from_tree

SOURCE = b"""namespace outer {
/** The widget. */
class Widget {
public:
    /** Draws it. */
    void draw() {}
};
}

/** Free helper. */
int helper(int x) { return x; }

/** Dangling at end of file. */
"""


class TestFindDeclarationNodes(unittest.TestCase):
    def test_query_matches_construct_nodes(self):
        tree = parse_bytes(SOURCE)

        types = [node.type for node in find_declaration_nodes(tree)]

        self.assertIn("namespace_definition", types)
        self.assertIn("class_specifier", types)
        self.assertEqual(types.count("function_definition"), 2)

    def test_namespace_path_excludes_node_itself(self):
        tree = parse_bytes(SOURCE)
        nodes = {node.type: node for node in find_declaration_nodes(tree)}

        self.assertEqual(extract_namespace_path(nodes["class_specifier"], SOURCE), "outer")
        self.assertEqual(extract_namespace_path(nodes["namespace_definition"], SOURCE), "")


class TestAssociateDocs(unittest.TestCase):
    def setUp(self):
        self.tree = parse_bytes(SOURCE)
        self.blocks = associate_docs_with_nodes(extract_docstring_blocks(SOURCE), self.tree, SOURCE)

    def test_block_count(self):
        self.assertEqual(len(self.blocks), 4)

    def test_class_doc(self):
        widget_doc = self.blocks[0]

        self.assertEqual(widget_doc.symbol_name, "Widget")
        self.assertEqual(widget_doc.symbol_type, "class_specifier")
        self.assertEqual(widget_doc.namespace_path, "outer")
        self.assertTrue(widget_doc.is_associated)

    def test_method_doc(self):
        draw_doc = self.blocks[1]

        self.assertEqual(draw_doc.symbol_name, "draw")
        self.assertEqual(draw_doc.namespace_path, "outer::Widget")

    def test_free_function_doc(self):
        helper_doc = self.blocks[2]

        self.assertEqual(helper_doc.symbol_name, "helper")
        self.assertEqual(helper_doc.namespace_path, "")

    def test_unmatched_block(self):
        dangling = self.blocks[3]

        self.assertFalse(dangling.is_associated)
        self.assertEqual(dangling.symbol_name, "")

    def test_no_blocks(self):
        self.assertEqual(associate_docs_with_nodes([], self.tree, SOURCE), [])


class TestAttachDocsToConstructs(unittest.TestCase):
    def test_attach_by_associated_node(self):
        source = b"/// Line documented.\nvoid f() {}\n"
        tree = parse_bytes(source)
        constructs = extract_constructs_from_tree(tree, source, "f.cpp")
        blocks = associate_docs_with_nodes(extract_docstring_blocks(source, "///"), tree, source)

        attached = attach_docs_to_constructs(constructs, blocks)

        self.assertEqual(attached, 1)
        self.assertEqual(constructs[0].doc_comment, "/// Line documented.")

    def test_existing_doc_is_kept(self):
        tree = parse_bytes(SOURCE)
        constructs = extract_constructs_from_tree(tree, SOURCE, "a.cpp")
        before = {c.qualified_name: c.doc_comment for c in constructs}
        blocks = associate_docs_with_nodes(extract_docstring_blocks(SOURCE), tree, SOURCE)

        attach_docs_to_constructs(constructs, blocks)

        self.assertEqual(
            {c.qualified_name: c.doc_comment for c in constructs if before[c.qualified_name]},
            {name: doc for name, doc in before.items() if doc},
        )

    def test_line_proximity_fallback_picks_nearest(self):
        source = "/** Far. */\n/** Near. */\n\n\nvoid g();\n"
        blocks = extract_docstring_blocks(source)
        construct = Construct(
            kind=ConstructKind.FUNCTION,
            name="g",
            qualified_name="g",
            enclosing_scope="",
            span=SourceSpan(start_line=5, end_line=5, start_byte=999, end_byte=1000),
            source_file="g.h",
        )

        self.assertEqual(attach_docs_to_constructs([construct], blocks), 1)
        self.assertEqual(construct.doc_comment, "/** Near. */")

    def test_block_owned_by_another_node_is_not_borrowed(self):
        source = b"""/** Only about Config. */
struct Config {
    int first_field_with_a_rather_long_name_to_push_past_the_window;
    int second_field_with_a_rather_long_name_as_well_for_good_measure;
};
int unrelated() { return 0; }
"""
        tree = parse_bytes(source)
        constructs = extract_constructs_from_tree(tree, source, "config.h")
        blocks = associate_docs_with_nodes(extract_docstring_blocks(source), tree, source)

        attach_docs_to_constructs(constructs, blocks)

        named = {c.qualified_name: c for c in constructs}
        self.assertEqual(named["Config"].doc_comment, "/** Only about Config. */")
        self.assertIsNone(named["unrelated"].doc_comment)

    def test_line_proximity_window(self):
        blocks = extract_docstring_blocks("/** Too far. */\n" + "\n" * 20 + "void g();\n")
        construct = Construct(
            kind=ConstructKind.FUNCTION,
            name="g",
            qualified_name="g",
            enclosing_scope="",
            span=SourceSpan(start_line=22, end_line=22),
            source_file="g.h",
        )

        self.assertEqual(attach_docs_to_constructs([construct], blocks), 0)
        self.assertIsNone(construct.doc_comment)


if __name__ == "__main__":
    unittest.main()

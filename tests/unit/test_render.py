"""Unit tests for call tree rendering."""

import pytest
from rich.tree import Tree

from calltrace.core.explorer import label, render, render_rich, tree_to_dict
from calltrace.core.models import CallTreeNode, Marker, MethodSignature


@pytest.fixture
def mixed_tree() -> CallTreeNode:
    """Create a tree with one node of every marker under the root."""
    main = MethodSignature("app.Main", "run")
    helper = MethodSignature("app.Helper", "assist", ("str",))
    return CallTreeNode(
        signature=main,
        children=[
            CallTreeNode(
                signature=helper,
                line=3,
                children=[
                    CallTreeNode(signature=main, marker=Marker.RECURSIVE_CUT, line=9),
                ],
            ),
            CallTreeNode(signature=None, marker=Marker.EXTERNAL_UNRESOLVED, text="print", line=4),
            CallTreeNode(
                signature=MethodSignature("app.Deep", "dive"),
                marker=Marker.BUDGET_EXCEEDED,
                line=5,
            ),
            CallTreeNode(
                signature=None,
                marker=Marker.AMBIGUOUS,
                text="app.Helper.pick",
                line=6,
                candidates=(
                    MethodSignature("app.Helper", "pick", ("int",)),
                    MethodSignature("app.Helper", "pick", ("int", "int")),
                ),
            ),
        ],
    )


class TestRender:
    """Tests for plain text rendering."""

    def test_exact_text(self, mixed_tree: CallTreeNode) -> None:
        """Test the full rendering with indentation and suffixes."""
        assert render(mixed_tree) == (
            "app.Main.run\n"
            "  app.Helper.assist\n"
            "    app.Main.run (recursive call, stopping here)\n"
            "  print (external or unresolved)\n"
            "  app.Deep.dive (budget exceeded, stopping here)\n"
            "  app.Helper.pick (ambiguous: app.Helper.pick(int), app.Helper.pick(int, int))\n"
        )

    def test_idempotent(self, mixed_tree: CallTreeNode) -> None:
        """Test that rendering twice gives identical text."""
        assert render(mixed_tree) == render(mixed_tree)

    def test_single_node(self) -> None:
        """Test that a lone root renders as one line with a trailing newline."""
        assert render(CallTreeNode(signature=MethodSignature("A", "a"))) == "A.a\n"

    def test_not_found_label(self) -> None:
        """Test that NOT_FOUND nodes render their message."""
        node = CallTreeNode.not_found("Class not found: Missing")

        assert label(node) == "Class not found: Missing"


class TestRenderRich:
    """Tests for rich tree rendering."""

    def test_structure(self, mixed_tree: CallTreeNode) -> None:
        """Test that the rich tree mirrors the call tree."""
        tree = render_rich(mixed_tree)

        assert isinstance(tree, Tree)
        assert len(tree.children) == 4
        assert len(tree.children[0].children) == 1
        assert tree.label.plain == "app.Main.run"  # type: ignore[union-attr]

    def test_line_suffix(self, mixed_tree: CallTreeNode) -> None:
        """Test that child labels carry their call site line."""
        tree = render_rich(mixed_tree)

        label_text = tree.children[1].label.plain  # type: ignore[union-attr]
        assert label_text == "print (external or unresolved)  line 4"


class TestTreeToDict:
    """Tests for the JSON projection."""

    def test_fields(self, mixed_tree: CallTreeNode) -> None:
        """Test node fields, depths and nesting."""
        data = tree_to_dict(mixed_tree)

        assert data["marker"] == "expanded"
        assert data["owner"] == "app.Main"
        assert data["depth"] == 0
        assert len(data["children"]) == 4

        helper = data["children"][0]
        assert helper["parameters"] == ["str"]
        assert helper["line"] == 3
        assert helper["children"][0]["depth"] == 2
        assert helper["children"][0]["marker"] == "recursive_cut"

        external = data["children"][1]
        assert external["owner"] is None
        assert external["text"] == "print"

        ambiguous = data["children"][3]
        assert ambiguous["candidates"] == ["app.Helper.pick(int)", "app.Helper.pick(int, int)"]

    def test_children_in_order(self, mixed_tree: CallTreeNode) -> None:
        """Test that children keep call order."""
        data = tree_to_dict(mixed_tree)

        assert [c["marker"] for c in data["children"]] == [
            "expanded",
            "external_unresolved",
            "budget_exceeded",
            "ambiguous",
        ]

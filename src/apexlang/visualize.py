"""
Graphviz DOT rendering of apexlang syntax trees.

    from apexlang.visualize import visualize_source
    print(visualize_source('let x = 1 + 2;'))

The output is a `digraph apex { ... }` with one labelled node per AST node.
Rendering only reads the tree; no interpreter or registry state is touched.
"""

from typing import List, Optional

from .ast import (
    AstNode, AstVisitor, Program,
    Binding, ExpressionStatement, Block, UseStatement,
    Literal, Identifier, UnaryOp, BinaryOp, TupleLiteral, IndexAccess,
    QualifiedName, Call,
)
from .parser import parse_source
from .runtime.values import format_value


def escape_label(text: str) -> str:
    """Escape text for use inside a double-quoted DOT label."""
    return (text.replace("\\", "\\\\")
                .replace('"', '\\"')
                .replace("\n", "\\n"))


class DotBuilder:
    """Accumulates numbered nodes and edges for a DOT digraph."""

    def __init__(self, graph_name: str = "apex"):
        self.graph_name = graph_name
        self._nodes: List[str] = []
        self._edges: List[str] = []

    def add_node(self, label: str) -> int:
        node_id = len(self._nodes)
        self._nodes.append(f'  n{node_id} [label="{escape_label(label)}"];')
        return node_id

    def add_edge(self, source: int, target: int) -> None:
        self._edges.append(f"  n{source} -> n{target};")

    def finish(self) -> str:
        lines = [f"digraph {self.graph_name} {{", "  node [shape=box];"]
        lines.extend(self._nodes)
        lines.extend(self._edges)
        lines.append("}")
        return "\n".join(lines) + "\n"


class DotVisitor(AstVisitor):
    """Adds each visited node to a DotBuilder and returns its node id."""

    def __init__(self, builder: DotBuilder):
        self.builder = builder

    def _node(self, label: str, children: Optional[List[AstNode]] = None) -> int:
        node_id = self.builder.add_node(label)
        for child in children or []:
            self.builder.add_edge(node_id, child.accept(self))
        return node_id

    def generic_visit(self, node: AstNode) -> int:
        return self._node(node.kind, node.children())

    def visit_Program(self, node: Program) -> int:
        return self._node("Program", node.children())

    def visit_Binding(self, node: Binding) -> int:
        return self._node(f"let {node.name}", [node.value])

    def visit_ExpressionStatement(self, node: ExpressionStatement) -> int:
        return self._node("expr", [node.expression])

    def visit_Block(self, node: Block) -> int:
        return self._node("block", node.statements)

    def visit_UseStatement(self, node: UseStatement) -> int:
        label = f"use {node.module}::{node.symbol}"
        if node.alias is not None:
            label += f" as {node.alias}"
        return self._node(label)

    def visit_Literal(self, node: Literal) -> int:
        return self._node(f"Literal: {format_value(node.value)}")

    def visit_Identifier(self, node: Identifier) -> int:
        return self._node(f"Identifier: {node.name}")

    def visit_QualifiedName(self, node: QualifiedName) -> int:
        return self._node(f"Path: {node.path}")

    def visit_UnaryOp(self, node: UnaryOp) -> int:
        return self._node(f"Unary: {node.operator}", [node.operand])

    def visit_BinaryOp(self, node: BinaryOp) -> int:
        return self._node(f"Binary: {node.operator}", [node.left, node.right])

    def visit_TupleLiteral(self, node: TupleLiteral) -> int:
        return self._node(f"Tuple ({len(node.elements)})", node.elements)

    def visit_IndexAccess(self, node: IndexAccess) -> int:
        return self._node("Index", [node.object, node.index])

    def visit_Call(self, node: Call) -> int:
        call_id = self._node("Call", [node.callee])
        for position, argument in enumerate(node.arguments, start=1):
            label_id = self.builder.add_node(f"arg #{position}")
            self.builder.add_edge(call_id, label_id)
            self.builder.add_edge(label_id, argument.accept(self))
        return call_id


def program_to_dot(program: Program) -> str:
    """Render a parsed program as a DOT digraph."""
    builder = DotBuilder()
    program.accept(DotVisitor(builder))
    return builder.finish()


def visualize_source(source: str, filename: Optional[str] = None) -> str:
    """Parse source text and render it as a DOT digraph."""
    return program_to_dot(parse_source(source, filename))

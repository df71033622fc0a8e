"""
Program Graph Models

In-memory program graph handed over by the analysis collaborator.

Every node variant declares, next to its fields, the relationships it can
produce (``RELATIONSHIPS``) and the labels it is stored under (``LABELS``).
The relationship collector and the AST walks below dispatch over that
schema; nothing is discovered by introspection at runtime.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterator


class Arity(str, Enum):
    """Shape of the value held by a relationship field."""

    SINGLE = "single"    # one target node (or None)
    NODES = "nodes"      # list of target nodes
    EDGES = "edges"      # list of typed Edge objects carrying their own properties


@dataclass(frozen=True)
class RelationshipField:
    """One outbound relationship a node variant may produce."""

    name: str            # relationship type written to the store
    attribute: str       # dataclass field holding the target(s)
    arity: Arity
    ast: bool = False    # structural parent -> child link


@dataclass(eq=False)
class Edge:
    """A typed edge between two program nodes with its own property set."""

    start: "ProgramNode"
    end: "ProgramNode"
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class ProgramNode:
    """
    Base of all program graph nodes.

    ``id`` is the identity assigned by the analysis pass. It is NOT unique:
    distinct nodes may share it, so nodes compare and hash by object identity.
    """

    id: int = 0
    name: str = ""
    code: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    language: "Language | None" = None
    next_eog: list[Edge] = field(default_factory=list)
    next_dfg: list[Edge] = field(default_factory=list)

    LABELS: ClassVar[tuple[str, ...]] = ("Node",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = (
        RelationshipField("LANGUAGE", "language", Arity.SINGLE),
        RelationshipField("EOG", "next_eog", Arity.EDGES),
        RelationshipField("DFG", "next_dfg", Arity.EDGES),
    )

    @property
    def labels(self) -> tuple[str, ...]:
        return self.LABELS

    @property
    def local_name(self) -> str:
        """Last ``::`` segment of the (possibly qualified) name."""
        return self.name.rsplit("::", 1)[-1]

    def persistable_properties(self) -> dict[str, Any]:
        """Properties written to the store, before demangling and tagging."""
        props = dict(self.properties)
        props["name"] = self.name
        if self.code is not None:
            props["code"] = self.code
        return props

    def relationship_targets(self, rel: RelationshipField) -> list["ProgramNode"]:
        """Return the nodes referenced through one relationship field."""
        value = getattr(self, rel.attribute)
        if value is None:
            return []
        if rel.arity is Arity.SINGLE:
            return [value]
        if rel.arity is Arity.NODES:
            return [n for n in value if n is not None]
        return [edge.end for edge in value]

    def ast_children(self) -> list["ProgramNode"]:
        children: list[ProgramNode] = []
        for rel in self.RELATIONSHIPS:
            if rel.ast:
                children.extend(self.relationship_targets(rel))
        return children

    def add_eog(self, target: "ProgramNode", **properties) -> Edge:
        edge = Edge(self, target, dict(properties))
        self.next_eog.append(edge)
        return edge

    def add_dfg(self, target: "ProgramNode", **properties) -> Edge:
        edge = Edge(self, target, dict(properties))
        self.next_dfg.append(edge)
        return edge


# ─── Declarations ──────────────────────────────────────────


@dataclass(eq=False)
class Declaration(ProgramNode):
    LABELS: ClassVar[tuple[str, ...]] = ProgramNode.LABELS + ("Declaration",)


@dataclass(eq=False)
class TranslationUnitDeclaration(Declaration):
    declarations: list[ProgramNode] = field(default_factory=list)

    LABELS: ClassVar[tuple[str, ...]] = Declaration.LABELS + ("TranslationUnitDeclaration",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = Declaration.RELATIONSHIPS + (
        RelationshipField("DECLARATIONS", "declarations", Arity.NODES, ast=True),
    )


@dataclass(eq=False)
class ValueDeclaration(Declaration):
    declared_type: "Type | None" = None

    LABELS: ClassVar[tuple[str, ...]] = Declaration.LABELS + ("ValueDeclaration",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = Declaration.RELATIONSHIPS + (
        RelationshipField("TYPE", "declared_type", Arity.SINGLE),
    )


@dataclass(eq=False)
class FunctionDeclaration(ValueDeclaration):
    parameters: list[ProgramNode] = field(default_factory=list)
    body: ProgramNode | None = None

    LABELS: ClassVar[tuple[str, ...]] = ValueDeclaration.LABELS + ("FunctionDeclaration",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = ValueDeclaration.RELATIONSHIPS + (
        RelationshipField("PARAMETERS", "parameters", Arity.NODES, ast=True),
        RelationshipField("BODY", "body", Arity.SINGLE, ast=True),
    )

    def blocks(self) -> list["Block"]:
        """All basic blocks below this function's body, outermost first."""
        return [n for n in walk_ast(self.body) if isinstance(n, Block)] if self.body else []


@dataclass(eq=False)
class MethodDeclaration(FunctionDeclaration):
    LABELS: ClassVar[tuple[str, ...]] = FunctionDeclaration.LABELS + ("MethodDeclaration",)


@dataclass(eq=False)
class ParameterDeclaration(ValueDeclaration):
    LABELS: ClassVar[tuple[str, ...]] = ValueDeclaration.LABELS + ("ParameterDeclaration",)


@dataclass(eq=False)
class VariableDeclaration(ValueDeclaration):
    initializer: ProgramNode | None = None

    LABELS: ClassVar[tuple[str, ...]] = ValueDeclaration.LABELS + ("VariableDeclaration",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = ValueDeclaration.RELATIONSHIPS + (
        RelationshipField("INITIALIZER", "initializer", Arity.SINGLE, ast=True),
    )


# ─── Statements & expressions ──────────────────────────────


@dataclass(eq=False)
class Statement(ProgramNode):
    LABELS: ClassVar[tuple[str, ...]] = ProgramNode.LABELS + ("Statement",)


@dataclass(eq=False)
class Block(Statement):
    statements: list[Edge] = field(default_factory=list)

    LABELS: ClassVar[tuple[str, ...]] = Statement.LABELS + ("Block",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = Statement.RELATIONSHIPS + (
        RelationshipField("STATEMENTS", "statements", Arity.EDGES, ast=True),
    )

    def add(self, statement: ProgramNode) -> ProgramNode:
        """Append a statement, recording its position on the AST edge."""
        self.statements.append(Edge(self, statement, {"index": len(self.statements)}))
        return statement

    def own_nodes(self) -> list[ProgramNode]:
        """AST nodes that belong to this block, not descending into nested blocks."""
        return [n for n in walk_ast(self, stop_at=Block) if n is not self]


@dataclass(eq=False)
class Expression(Statement):
    LABELS: ClassVar[tuple[str, ...]] = Statement.LABELS + ("Expression",)


@dataclass(eq=False)
class CallExpression(Expression):
    callee: ProgramNode | None = None
    arguments: list[Edge] = field(default_factory=list)
    invokes: list[ProgramNode] = field(default_factory=list)

    LABELS: ClassVar[tuple[str, ...]] = Expression.LABELS + ("CallExpression",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = Expression.RELATIONSHIPS + (
        RelationshipField("CALLEE", "callee", Arity.SINGLE, ast=True),
        RelationshipField("ARGUMENTS", "arguments", Arity.EDGES, ast=True),
        RelationshipField("INVOKES", "invokes", Arity.NODES),
    )

    def add_argument(self, argument: ProgramNode) -> ProgramNode:
        self.arguments.append(Edge(self, argument, {"index": len(self.arguments)}))
        return argument


@dataclass(eq=False)
class Reference(Expression):
    refers_to: ProgramNode | None = None

    LABELS: ClassVar[tuple[str, ...]] = Expression.LABELS + ("Reference",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = Expression.RELATIONSHIPS + (
        RelationshipField("REFERS_TO", "refers_to", Arity.SINGLE),
    )


@dataclass(eq=False)
class Literal(Expression):
    LABELS: ClassVar[tuple[str, ...]] = Expression.LABELS + ("Literal",)


# ─── Scopes, types, languages ──────────────────────────────


@dataclass(eq=False)
class Scope(ProgramNode):
    ast_node: ProgramNode | None = None

    LABELS: ClassVar[tuple[str, ...]] = ProgramNode.LABELS + ("Scope",)
    RELATIONSHIPS: ClassVar[tuple[RelationshipField, ...]] = ProgramNode.RELATIONSHIPS + (
        RelationshipField("SCOPE_OF", "ast_node", Arity.SINGLE),
    )


@dataclass(eq=False)
class FunctionScope(Scope):
    """Scope of a function body. Carries no name of its own."""

    LABELS: ClassVar[tuple[str, ...]] = Scope.LABELS + ("FunctionScope",)


@dataclass(eq=False)
class Type(ProgramNode):
    LABELS: ClassVar[tuple[str, ...]] = ProgramNode.LABELS + ("Type",)


@dataclass(eq=False)
class ObjectType(Type):
    LABELS: ClassVar[tuple[str, ...]] = Type.LABELS + ("ObjectType",)


@dataclass(eq=False)
class UnknownType(Type):
    LABELS: ClassVar[tuple[str, ...]] = Type.LABELS + ("UnknownType",)


@dataclass(eq=False)
class Language(ProgramNode):
    LABELS: ClassVar[tuple[str, ...]] = ProgramNode.LABELS + ("Language",)


NODE_KINDS: dict[str, type[ProgramNode]] = {
    cls.__name__: cls
    for cls in (
        ProgramNode,
        TranslationUnitDeclaration,
        FunctionDeclaration,
        MethodDeclaration,
        ParameterDeclaration,
        VariableDeclaration,
        Block,
        CallExpression,
        Reference,
        Literal,
        FunctionScope,
        ObjectType,
        UnknownType,
        Language,
    )
}


def walk_ast(
    root: ProgramNode | None,
    stop_at: type[ProgramNode] | None = None,
) -> Iterator[ProgramNode]:
    """
    Depth-first pre-order walk over AST children, starting with ``root``.

    Nodes of type ``stop_at`` below the root are neither yielded nor entered.
    Each node is visited once even if the graph shares subtrees.
    """
    if root is None:
        return
    seen: set[int] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        if stop_at is not None and node is not root and isinstance(node, stop_at):
            continue
        yield node
        stack.extend(reversed(node.ast_children()))

"""
Shared fixtures: a small program graph shaped like the LLVM IR frontend's output,
and a mocked Neo4j handler.
"""

from dataclasses import dataclass
from unittest.mock import AsyncMock

import pytest

from src.cpg.models import (
    Block,
    CallExpression,
    FunctionDeclaration,
    FunctionScope,
    Language,
    Literal,
    ObjectType,
    ProgramNode,
    Reference,
    TranslationUnitDeclaration,
    UnknownType,
    VariableDeclaration,
    walk_ast,
)

MAIN_MANGLED = "_ZN4demo4main17h0123456789abcdefE"
HELPER_MANGLED = "_ZN4demo6helper17hfedcba9876543210E"
STD_MANGLED = "_ZN3std2rt10lang_start17h00112233445566aaE"


@dataclass
class Program:
    """Handles to the interesting nodes of the sample graph."""

    nodes: list[ProgramNode]
    unit: TranslationUnitDeclaration
    language: Language
    i32: ObjectType
    unknown: UnknownType
    main: FunctionDeclaration
    body: Block
    bb0: Block
    bb1: Block
    x_bb0: VariableDeclaration
    x_bb1: VariableDeclaration
    dbg_call: CallExpression
    helper_call: CallExpression
    helper: FunctionDeclaration
    std_fn: FunctionDeclaration
    std_var: VariableDeclaration
    scope: FunctionScope


def _function_with_declare(fid: int, name: str, var_name: str, language: Language):
    fn = FunctionDeclaration(id=fid, name=name, language=language)
    body = Block(id=fid + 1, language=language)
    block = body.add(Block(id=fid + 2, name="start", language=language))
    var = block.add(VariableDeclaration(id=fid + 3, name=var_name, language=language))
    call = block.add(CallExpression(id=fid + 4, name="llvm.dbg.declare", language=language))
    call.add_argument(Literal(id=fid + 5, code=f"metadata ptr %{var_name}", language=language))
    fn.body = body
    return fn, var


def build_program() -> Program:
    lang = Language(id=1, name="LLVMIRLanguage")
    i32 = ObjectType(id=2, name="i32", language=lang)
    unknown = UnknownType(id=3, name="UNKNOWN", language=lang)

    main = FunctionDeclaration(id=10, name=MAIN_MANGLED, language=lang, declared_type=i32)
    body = Block(id=11, language=lang)
    bb0 = body.add(Block(id=12, name="bb0", language=lang))
    bb1 = body.add(Block(id=13, name="bb1", language=lang))

    # Both declarations share the analysis id on purpose: ids are not unique.
    x_bb0 = bb0.add(VariableDeclaration(id=14, name="x", language=lang, declared_type=i32))
    dbg_call = bb0.add(CallExpression(id=15, name="llvm.dbg.declare", language=lang))
    dbg_call.add_argument(Literal(id=16, code="metadata ptr %x", language=lang))
    x_bb1 = bb1.add(VariableDeclaration(id=14, name="x", language=lang, declared_type=unknown))

    helper = FunctionDeclaration(id=30, name=HELPER_MANGLED, language=lang)
    helper_call = bb1.add(CallExpression(id=17, name=HELPER_MANGLED, language=lang))
    helper_call.callee = Reference(id=18, name=HELPER_MANGLED, refers_to=helper, language=lang)
    helper_call.invokes = [helper]
    main.body = body

    x_bb0.add_dfg(dbg_call, granularity="full")
    bb0.add_eog(bb1)

    std_fn, std_var = _function_with_declare(40, STD_MANGLED, "guard", lang)

    scope = FunctionScope(id=50, ast_node=main, language=lang)
    unit = TranslationUnitDeclaration(
        id=60, name="demo.ll", language=lang, declarations=[main, helper, std_fn]
    )

    nodes = [lang, i32, unknown, scope, *walk_ast(unit)]

    return Program(
        nodes=nodes, unit=unit, language=lang, i32=i32, unknown=unknown,
        main=main, body=body, bb0=bb0, bb1=bb1, x_bb0=x_bb0, x_bb1=x_bb1,
        dbg_call=dbg_call, helper_call=helper_call, helper=helper,
        std_fn=std_fn, std_var=std_var, scope=scope,
    )


@pytest.fixture
def program() -> Program:
    return build_program()


@pytest.fixture
def handler() -> AsyncMock:
    """Neo4jHandler stand-in recording every statement."""
    mock = AsyncMock()
    mock.execute_read.return_value = []
    mock.uri = "bolt://localhost:7687"
    return mock

"""
Instruction set and program model for blind evaluation.

A program is a postfix (Reverse-Polish) listing of an expression tree built
from a single binary operator. It carries no reference to any ciphertext
type: the same program can be evaluated over any value type for which a
binary operation is supplied.
"""

from abc import ABC
from dataclasses import dataclass
from enum import IntEnum, auto, unique
from functools import singledispatchmethod
from typing import Iterable, Iterator, NamedTuple


@unique
class Opcode(IntEnum):
    ARG = 0             # stack[-1] <- next operand
    BINARY_OP = auto()  # stack[-1] <- op(stack[-2], stack[-1])


class Inst(NamedTuple):
    op: Opcode
    arg: int = 0

    def __repr__(self) -> str:
        if self.op == Opcode.ARG:
            return f'Arg({self.arg})'
        return 'BinaryOp'


def Arg(index: int) -> Inst:
    return Inst(Opcode.ARG, index)


BinaryOp = Inst(Opcode.BINARY_OP)


@dataclass(frozen=True)
class Program:
    """An immutable instruction sequence. No validation happens here; malformed
    programs are reported when they are run."""

    instructions: tuple[Inst, ...]

    def __init__(self, instructions: Iterable[Inst] = ()):
        object.__setattr__(self, 'instructions', tuple(instructions))

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Inst]:
        return iter(self.instructions)

    def __getitem__(self, i: int) -> Inst:
        return self.instructions[i]

    @property
    def arity(self) -> int:
        return sum(1 for inst in self.instructions if getattr(inst, 'op', None) == Opcode.ARG)

    @classmethod
    def from_expr(cls, expr: 'Expr') -> 'Program':
        return compile_expr(expr)

    def __repr__(self) -> str:
        return f'Program({list(self.instructions)!r})'


class Expr(ABC):
    pass


@dataclass(frozen=True)
class Leaf(Expr):
    index: int


@dataclass(frozen=True)
class Node(Expr):
    left: Expr
    right: Expr


class _Emitter:
    def __init__(self):
        self.prog: list[Inst] = []

    def emit(self, inst: Inst):
        self.prog.append(inst)

    @singledispatchmethod
    def compile(self, _: Expr):
        raise NotImplementedError

    @compile.register
    def _(self, leaf: Leaf):
        self.emit(Arg(leaf.index))

    @compile.register
    def _(self, node: Node):
        self.compile(node.left)
        self.compile(node.right)
        self.emit(BinaryOp)


def compile_expr(expr: Expr) -> Program:
    """Postfix listing of an expression tree: left subtree, right subtree, operator."""
    emitter = _Emitter()
    emitter.compile(expr)
    return Program(emitter.prog)


def product_tree(n: int) -> Expr:
    """Left-leaning tree over n leaves, i.e. op(op(op(x0, x1), x2), ...)."""
    if n < 1:
        raise ValueError('a product needs at least one factor')
    expr: Expr = Leaf(0)
    for i in range(1, n):
        expr = Node(expr, Leaf(i))
    return expr

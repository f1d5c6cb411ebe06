"""
Stack interpreter for postfix programs over opaque values.

compile_program() binds a Program to one binary operation and returns an
Evaluator. The evaluator never looks inside the values it moves around; the
only thing it does with them is pass pairs to the bound operation.
"""

from collections import deque
from typing import Callable, Generic, Sequence, TypeVar

from blind_compute_package.program import Inst, Opcode, Program

Ct = TypeVar('Ct')
BinaryOperation = Callable[[Ct, Ct], Ct]


class EvalError(RuntimeError):
    def __init__(self, ip: int, message: str):
        self.ip = ip
        super().__init__(f'{ip}: error: {message}')


class InsufficientArguments(EvalError):
    pass


class StackUnderflow(EvalError):
    pass


class EmptyResult(EvalError):
    pass


class UnconsumedValues(EvalError):
    pass


class InvalidInstruction(EvalError):
    pass


class Evaluator(Generic[Ct]):
    """
    A program bound to a binary operation.

    In sequential mode (the default) each Arg consumes the next operand in
    order and its index is not consulted. In indexed mode Arg(i) reads
    operands[i], so an operand may be used several times or not at all.
    Operands left over after the last instruction are ignored.
    """

    __slots__ = ('_program', '_op', '_indexed')

    def __init__(self, program: Program, op: BinaryOperation, indexed: bool = False):
        object.__setattr__(self, '_program', program)
        object.__setattr__(self, '_op', op)
        object.__setattr__(self, '_indexed', indexed)

    def __setattr__(self, name, value):
        raise AttributeError(f'{self.__class__.__name__} is immutable')

    @property
    def program(self) -> Program:
        return self._program

    @property
    def op(self) -> BinaryOperation:
        return self._op

    @property
    def indexed(self) -> bool:
        return self._indexed

    def run(self, operands: Sequence[Ct]) -> Ct:
        op = self._op
        stack: list[Ct] = []
        args = list(operands)
        queue = deque(args)
        ip = 0
        inst: Inst
        def arg():
            if self._indexed:
                if not isinstance(inst.arg, int):
                    raise InvalidInstruction(ip, f'Arg index must be an int, got {inst.arg!r}')
                if not 0 <= inst.arg < len(args):
                    raise InsufficientArguments(ip, f'Arg({inst.arg}) but only {len(args)} operands supplied')
                stack.append(args[inst.arg])
            else:
                if not queue:
                    raise InsufficientArguments(ip, 'Arg with no operands left')
                stack.append(queue.popleft())
        def binary_op():
            if len(stack) < 2:
                raise StackUnderflow(ip, f'BinaryOp needs 2 values, stack has {len(stack)}')
            b = stack.pop()
            a = stack.pop()
            stack.append(op(a, b))
        code = {
            Opcode.ARG: arg,
            Opcode.BINARY_OP: binary_op,
        }
        for ip, inst in enumerate(self._program):
            try:
                handler = code[inst.op]
            except (AttributeError, KeyError, TypeError):
                raise InvalidInstruction(ip, f'not an instruction: {inst!r}') from None
            handler()
        ip = len(self._program)
        if not stack:
            raise EmptyResult(ip, 'program produced no value')
        if len(stack) > 1:
            raise UnconsumedValues(ip, f'{len(stack)} values left on the stack')
        return stack[0]

    __call__ = run

    def __repr__(self) -> str:
        mode = 'indexed' if self._indexed else 'sequential'
        return f'Evaluator({self._program!r}, {mode})'


def compile_program(program: Program, op: BinaryOperation, indexed: bool = False) -> Evaluator:
    return Evaluator(program, op, indexed)

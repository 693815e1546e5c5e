from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Union

from .types import ExpressionResult, Operation
from .utils import number_to_words


@dataclass(frozen=True)
class OperatorSpec:
    symbol: str
    word: str
    apply: Callable[[int, int], int]


OPERATORS: Dict[Operation, OperatorSpec] = {
    Operation.ADD: OperatorSpec("+", "plus", lambda a, b: a + b),
    Operation.SUBTRACT: OperatorSpec("-", "minus", lambda a, b: a - b),
    Operation.MULTIPLY: OperatorSpec("×", "times", lambda a, b: a * b),
}

_ALIASES: Dict[str, Operation] = {
    "+": Operation.ADD,
    "plus": Operation.ADD,
    "-": Operation.SUBTRACT,
    "minus": Operation.SUBTRACT,
    "*": Operation.MULTIPLY,
    "x": Operation.MULTIPLY,
    "×": Operation.MULTIPLY,
    "times": Operation.MULTIPLY,
}


def parse_operation(value: Union[Operation, str]) -> Operation:
    if isinstance(value, Operation):
        return value
    key = str(value).strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return Operation(key)
    except ValueError:
        names = [op.value for op in Operation]
        raise ValueError(f"Unknown operation '{value}'. Available: {names}") from None


def evaluate_expression(
    counts: Sequence[int],
    operation: Union[Operation, str] = Operation.ADD,
) -> Optional[ExpressionResult]:
    """
    Combine two finger counts (detection order) with the selected operator.

    Returns None for any hand count other than two.
    """
    if len(counts) != 2:
        return None

    a, b = int(counts[0]), int(counts[1])
    spec = OPERATORS[parse_operation(operation)]
    result = spec.apply(a, b)
    sentence = (
        f"{number_to_words(a)} {spec.word} {number_to_words(b)} "
        f"equals {number_to_words(result)}"
    )
    return ExpressionResult(
        left_count=a,
        right_count=b,
        operator_symbol=spec.symbol,
        operator_word=spec.word,
        result=result,
        sentence=sentence,
    )

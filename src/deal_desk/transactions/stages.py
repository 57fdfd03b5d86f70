"""Ordered lifecycle stages of a sale transaction."""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union

from .errors import UnknownStage


class TransactionStatus(Enum):
    """Transaction status stages, in lifecycle order."""
    AGREEMENT = "agreement"
    EARNEST_MONEY = "earnest_money"
    TITLE_DEED = "title_deed"
    COMPLETED = "completed"


STAGE_RANK: Mapping[TransactionStatus, int] = MappingProxyType({
    TransactionStatus.AGREEMENT: 0,
    TransactionStatus.EARNEST_MONEY: 1,
    TransactionStatus.TITLE_DEED: 2,
    TransactionStatus.COMPLETED: 3,
})

_BY_RANK = {rank: stage for stage, rank in STAGE_RANK.items()}

StageLike = Union[TransactionStatus, str]


def parse_stage(value: StageLike) -> TransactionStatus:
    """Coerce an enum member or its string value into a stage."""
    if isinstance(value, TransactionStatus):
        return value
    try:
        return TransactionStatus(value)
    except ValueError:
        raise UnknownStage(value) from None


def position_of(stage: StageLike) -> int:
    """Rank of a stage in the lifecycle."""
    return STAGE_RANK[parse_stage(stage)]


def first_stage() -> TransactionStatus:
    return _BY_RANK[0]


def terminal_stage() -> TransactionStatus:
    return _BY_RANK[len(_BY_RANK) - 1]


def is_terminal(stage: StageLike) -> bool:
    return parse_stage(stage) is terminal_stage()


def next_stage(stage: StageLike) -> Optional[TransactionStatus]:
    """The stage directly after `stage`, or None at the end."""
    return _BY_RANK.get(position_of(stage) + 1)

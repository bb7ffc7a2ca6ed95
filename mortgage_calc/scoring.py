"""Loan comparison scoring.

Lower is better in every mode:

* ``totalOutOfPocket``: ``totals.total_out_of_pocket``
* ``principalInterest``: ``totals.total_cost_pi``
* ``payoffSpeed``: payoff months (``years * 12 + months``)

Ties on the primary score are broken the same way whatever the mode:
lowest out-of-pocket total, then lowest principal and interest, then the
fastest payoff, and finally the earlier candidate is kept.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Optional, Sequence

from .data_models import FixedLoanResult


class EvaluationMode(str, Enum):
    TOTAL_OUT_OF_POCKET = "totalOutOfPocket"
    PRINCIPAL_INTEREST = "principalInterest"
    PAYOFF_SPEED = "payoffSpeed"


def _payoff_months(loan) -> float:
    payoff = getattr(loan, "payoff_time", None)
    if payoff is None:
        return math.inf
    return (payoff.years or 0) * 12 + (payoff.months or 0)


def _total(loan, name: str) -> float:
    totals = getattr(loan, "totals", None)
    value = getattr(totals, name, None) if totals is not None else None
    return math.inf if value is None else value


def _primary_score(loan, mode: EvaluationMode) -> float:
    if mode == EvaluationMode.PRINCIPAL_INTEREST:
        return _total(loan, "total_cost_pi")
    if mode == EvaluationMode.PAYOFF_SPEED:
        return _payoff_months(loan)
    return _total(loan, "total_out_of_pocket")


def _tie_break_key(loan):
    return (_total(loan, "total_out_of_pocket"), _total(loan, "total_cost_pi"), _payoff_months(loan))


def determine_best_loan(
    loans: Sequence[FixedLoanResult],
    mode: EvaluationMode = EvaluationMode.TOTAL_OUT_OF_POCKET,
) -> Optional[FixedLoanResult]:
    """Return the best loan for ``mode`` or ``None`` when ``loans`` is empty.

    The winner's ``evaluation["score_basis"]`` is set to the mode used
    unless it already carries one.
    """
    if not loans:
        return None
    mode = EvaluationMode(mode)
    best = loans[0]
    for candidate in loans[1:]:
        candidate_score = _primary_score(candidate, mode)
        best_score = _primary_score(best, mode)
        if candidate_score < best_score:
            best = candidate
        elif candidate_score == best_score and _tie_break_key(candidate) < _tie_break_key(best):
            best = candidate

    if best.evaluation is None:
        best.evaluation = {}
    best.evaluation.setdefault("score_basis", mode.value)
    return best

"""JSON and CSV export of calculator results.

``to_serializable`` turns any result dataclass into plain JSON-ready
structures (dates become ISO strings, enums their values). The CSV writers
produce one schedule per file with a fixed header so spreadsheets built on
top of them keep working.
"""

from __future__ import annotations

import csv
import json
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .data_models import (
    AdditionalCosts,
    BlendedResult,
    BlendedScheduleRow,
    FixedLoanResult,
    HelocAnalysis,
    PmiMeta,
    PmiStatus,
    PurchaseScenarioResult,
    RefinanceResult,
    ScheduleRow,
)

HELOC_CSV_HEADER = [
    "Payment #",
    "Payment Date",
    "Phase",
    "Payment Amount",
    "Principal",
    "Interest",
    "Balance",
    "Cumulative Principal",
    "Cumulative Interest",
]

FIXED_CSV_HEADER = [
    "Payment #",
    "Payment Date",
    "Payment Amount",
    "Principal",
    "Interest",
    "PMI",
    "Balance",
]

BLENDED_CSV_HEADER = [
    "Payment #",
    "First Mortgage Principal",
    "First Mortgage Interest",
    "Second Mortgage Principal",
    "Second Mortgage Interest",
    "Additional Principal",
    "Additional Interest",
    "Total Principal",
    "Total Interest",
    "Total Payment",
    "Remaining Balance",
]


def to_serializable(obj: Any) -> Any:
    """Recursively convert ``obj`` into JSON-compatible values."""
    if is_dataclass(obj) and not isinstance(obj, type):
        data = {f.name: to_serializable(getattr(obj, f.name)) for f in fields(obj)}
        # derived values consumers read directly
        if isinstance(obj, (PmiMeta, PmiStatus)):
            data["pmi_ends_month"] = obj.pmi_ends_month
        if isinstance(obj, AdditionalCosts):
            data["total"] = obj.total
        return data
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_serializable(v) for v in obj]
    return obj


def _money(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.2f}"


def _iso(value: Optional[date]) -> str:
    return value.isoformat() if value else ""


def export_to_json(path: Path, kind: str, inputs: Any, result: Any) -> None:
    """Write an ``{"kind", "inputs", "result"}`` envelope to ``path``."""
    data = {"kind": kind, "inputs": to_serializable(inputs), "result": to_serializable(result)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def write_heloc_csv(path: Path, schedule: Iterable[ScheduleRow]) -> None:
    """Export a HELOC two-phase schedule."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(HELOC_CSV_HEADER)
        for row in schedule:
            writer.writerow(
                [
                    row.payment_number,
                    _iso(row.payment_date),
                    row.phase or "",
                    _money(row.payment),
                    _money(row.principal_payment),
                    _money(row.interest_payment),
                    _money(row.balance),
                    _money(row.cumulative_principal),
                    _money(row.cumulative_interest),
                ]
            )


def write_fixed_csv(path: Path, schedule: Iterable[ScheduleRow]) -> None:
    """Export a fixed-loan schedule."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(FIXED_CSV_HEADER)
        for row in schedule:
            writer.writerow(
                [
                    row.payment_number,
                    _iso(row.payment_date),
                    _money(row.payment),
                    _money(row.principal_payment),
                    _money(row.interest_payment),
                    _money(row.pmi),
                    _money(row.balance),
                ]
            )


def write_blended_csv(path: Path, schedule: Iterable[BlendedScheduleRow]) -> None:
    """Export a merged blended schedule; additional components are summed."""
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(BLENDED_CSV_HEADER)
        for row in schedule:
            writer.writerow(
                [
                    row.payment_number,
                    _money(row.first_mortgage.principal),
                    _money(row.first_mortgage.interest),
                    _money(row.second_mortgage.principal),
                    _money(row.second_mortgage.interest),
                    _money(sum(s.principal for s in row.additional_components)),
                    _money(sum(s.interest for s in row.additional_components)),
                    _money(row.total_principal),
                    _money(row.total_interest),
                    _money(row.total_payment),
                    _money(row.total_remaining_balance),
                ]
            )


def write_schedule_csv(path: Path, result: Any) -> None:
    """Pick the CSV layout that matches ``result``."""
    if isinstance(result, HelocAnalysis):
        write_heloc_csv(path, result.schedule)
    elif isinstance(result, BlendedResult):
        write_blended_csv(path, result.schedule)
    elif isinstance(result, (PurchaseScenarioResult, RefinanceResult)):
        write_fixed_csv(path, result.schedule.schedule)
    elif isinstance(result, FixedLoanResult):
        write_fixed_csv(path, result.schedule)
    else:
        raise TypeError(f"No CSV layout for {type(result).__name__}")


def comparison_rows(loans: List[FixedLoanResult], best: Optional[FixedLoanResult]) -> List[Dict[str, Any]]:
    """Flat per-loan rows used by the comparison table and its JSON export."""
    rows = []
    for loan in loans:
        rows.append(
            {
                "name": loan.name,
                "monthly_payment": loan.total_monthly_payment,
                "total_interest": loan.totals.interest_paid,
                "total_out_of_pocket": loan.totals.total_out_of_pocket,
                "total_cost_pi": loan.totals.total_cost_pi,
                "payoff_months": loan.payoff_time.total_months,
                "pmi_ends_month": loan.pmi_meta.pmi_ends_month,
                "best": loan is best,
            }
        )
    return rows

"""Data models for the mortgage calculator.

This module defines dataclasses for the inputs and results of every
calculator: fixed-rate house loans, HELOC two-phase schedules, blended
(multi-component) mortgages and the purchase/refinance scenarios built on
top of them. Results are plain dataclasses so they can be inspected in
tests and serialized with ``dataclasses.asdict`` for the exporters and the
web API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional

PHASE_INTEREST_ONLY = "Interest-Only"
PHASE_PRINCIPAL_INTEREST = "Principal & Interest"

LOAN_TYPE_FIXED = "fixed"
LOAN_TYPE_HELOC = "heloc"
LOAN_TYPE_VARIABLE = "variable"
LOAN_TYPES = (LOAN_TYPE_FIXED, LOAN_TYPE_HELOC, LOAN_TYPE_VARIABLE)


# ---------------------------------------------------------------------------
# Shared schedule structures
# ---------------------------------------------------------------------------


@dataclass
class ScheduleRow:
    """One month of a payment schedule.

    ``payment`` is the principal and interest cash for the month (including
    any extra principal). PMI is reported separately in ``pmi`` so that
    ``principal_payment + interest_payment == payment`` holds on every row.
    ``phase`` is only set for HELOC-style schedules and the cumulative
    columns only when accumulation was requested.
    """

    payment_number: int
    payment_date: Optional[date]
    payment: float
    principal_payment: float
    interest_payment: float
    balance: float
    cumulative_principal: Optional[float] = None
    cumulative_interest: Optional[float] = None
    phase: Optional[str] = None
    pmi: float = 0.0
    extra_payment: float = 0.0


@dataclass
class PayoffTime:
    years: int
    months: int
    total_months: int

    @classmethod
    def from_months(cls, total_months: int) -> "PayoffTime":
        return cls(years=total_months // 12, months=total_months % 12, total_months=total_months)


@dataclass
class AmortizationRow:
    """A row of a plain fixed-rate amortization (no escrow, no PMI)."""

    payment_number: int
    principal_payment: float
    interest_payment: float
    remaining_balance: float


@dataclass
class AmortizationTotals:
    total_interest: float = 0.0
    total_paid: float = 0.0
    total_principal: float = 0.0


@dataclass
class AmortizationFlags:
    zero_rate: bool = False
    normalization_applied: bool = False


@dataclass
class FixedAmortizationResult:
    schedule: List[AmortizationRow]
    totals: AmortizationTotals
    monthly_payment: float
    flags: AmortizationFlags


# ---------------------------------------------------------------------------
# PMI
# ---------------------------------------------------------------------------


class PmiStatusKind(str, Enum):
    NEVER_CHARGED = "never_charged"
    NEVER_DROPS = "never_drops"
    DROPS_AT_MONTH = "drops_at_month"


@dataclass(frozen=True)
class PmiStatus:
    """How PMI behaves over the life of a fixed loan.

    * ``NEVER_CHARGED`` - PMI was not applicable at origination. This covers
      a zero loan amount, a missing appraisal, a zero PMI charge and a
      starting LTV at or below the threshold alike; the reasons are not
      distinguished.
    * ``NEVER_DROPS`` - PMI was charged and the schedule ended before the
      LTV crossed the threshold.
    * ``DROPS_AT_MONTH`` - ``month`` is the first month with no PMI, so PMI
      was charged through ``month - 1``.

    ``pmi_ends_month`` gives the compact legacy encoding used by exports:
    ``1`` for never charged, ``None`` for never drops, ``month`` otherwise.
    """

    kind: PmiStatusKind
    month: Optional[int] = None

    @classmethod
    def never_charged(cls) -> "PmiStatus":
        return cls(PmiStatusKind.NEVER_CHARGED)

    @classmethod
    def never_drops(cls) -> "PmiStatus":
        return cls(PmiStatusKind.NEVER_DROPS)

    @classmethod
    def drops_at(cls, month: int) -> "PmiStatus":
        if month < 1:
            raise ValueError("PMI drop month is 1-based")
        return cls(PmiStatusKind.DROPS_AT_MONTH, month)

    @property
    def pmi_ends_month(self) -> Optional[int]:
        if self.kind is PmiStatusKind.NEVER_CHARGED:
            return 1
        if self.kind is PmiStatusKind.NEVER_DROPS:
            return None
        return self.month


@dataclass
class PmiMeta:
    pmi_monthly_input: float
    status: PmiStatus
    pmi_total_paid: float
    threshold_ltv: float  # decimal fraction, e.g. 0.80

    @property
    def pmi_ends_month(self) -> Optional[int]:
        return self.status.pmi_ends_month


# ---------------------------------------------------------------------------
# Fixed-rate house loan
# ---------------------------------------------------------------------------


@dataclass
class LoanInput:
    """A fixed-rate "house style" loan.

    Escrow items (``property_tax``, ``home_insurance``, ``hoa``) and ``pmi``
    are monthly amounts. ``pmi_end_rule`` is the LTV percentage at which
    PMI stops (typically 80 or 78). ``fixed_monthly_pmi``, when set,
    replaces ``pmi``; refinance flows use it for a quoted PMI premium.
    """

    amount: float
    rate: float  # annual nominal interest rate in percent
    term: int  # term in years
    pmi: float = 0.0
    property_tax: float = 0.0
    home_insurance: float = 0.0
    hoa: float = 0.0
    extra: float = 0.0
    appraised_value: float = 0.0
    pmi_end_rule: float = 80.0
    fixed_monthly_pmi: Optional[float] = None
    start_date: Optional[date] = None
    name: str = ""
    letter: str = ""


@dataclass
class LoanTotals:
    principal: float
    interest_paid: float
    pmi_paid: float
    tax_paid: float
    insurance_paid: float
    hoa_paid: float
    total_out_of_pocket: float
    total_cost_pi: float
    total_cost_full: float


@dataclass
class Baseline:
    """The same loan run without extra principal payments."""

    interest_paid: float
    payoff_months: int


@dataclass
class ExtraDeltas:
    interest_saved: float
    months_saved: int


@dataclass
class Calculations:
    monthly_rate: float
    number_of_payments: int
    original_term: int
    pmi_threshold_ltv: float
    starting_ltv: Optional[float]


@dataclass
class FixedLoanResult:
    """Everything ``build_fixed_loan_schedule`` computes for one loan.

    ``loan`` echoes the input; every other field is derived. ``evaluation``
    is written by the scoring engine when this loan wins a comparison.
    """

    loan: LoanInput
    monthly_pi: float
    monthly_property_tax: float
    monthly_insurance: float
    monthly_hoa: float
    monthly_pmi_input: float
    total_monthly_payment: float
    base_monthly_payment_no_pmi: float
    total_interest: float
    total_cost: float
    totals: LoanTotals
    payoff_time: PayoffTime
    baseline: Optional[Baseline]
    extra_deltas: Optional[ExtraDeltas]
    calculations: Calculations
    pmi_meta: PmiMeta
    schedule: List[ScheduleRow] = field(default_factory=list)
    normalization_applied: bool = False
    evaluation: Dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.loan.name or self.loan.letter


# ---------------------------------------------------------------------------
# HELOC
# ---------------------------------------------------------------------------


@dataclass
class HelocSchedule:
    rows: List[ScheduleRow]
    repayment_months: int
    balance_clamped: bool = False


@dataclass
class RepaymentPlan:
    repayment_months: int
    adjusted: bool
    message: Optional[str] = None


@dataclass
class HelocInput:
    """HELOC analysis inputs.

    ``outstanding_balance`` is the existing first-lien balance (0 if none)
    and the credit line ``heloc_amount`` is assumed fully drawn at the
    start of the draw period.
    """

    property_value: float
    heloc_amount: float
    interest_rate: float
    draw_period_years: int
    total_term_years: int
    outstanding_balance: float = 0.0
    start_date: Optional[date] = None


@dataclass
class HelocPayments:
    interest_only_payment: float
    principal_interest_payment: float


@dataclass
class HelocTotals:
    total_interest: float
    total_interest_draw_phase: float
    total_interest_repay_phase: float


@dataclass
class HelocLtv:
    available_equity: float
    combined_ltv: float


@dataclass
class HelocEdgeFlags:
    zero_interest: bool = False
    repayment_months_adjusted: bool = False
    balance_clamped: bool = False
    rounding_adjusted: bool = False


@dataclass
class HelocAnalysis:
    inputs: HelocInput
    payments: HelocPayments
    schedule: List[ScheduleRow]
    totals: HelocTotals
    ltv: HelocLtv
    edge_flags: HelocEdgeFlags
    warnings: List[str]
    payoff_date: Optional[date]
    repayment_months: int


# ---------------------------------------------------------------------------
# Blended mortgage
# ---------------------------------------------------------------------------


@dataclass
class ComponentInput:
    """One lien of a blended structure.

    ``term`` is in years. ``draw_months``/``repay_months`` are only read for
    HELOC components listed in ``additional_components``; the second
    mortgage slot always uses the default 10/20 year split.
    """

    amount: float = 0.0
    rate: Optional[float] = None
    term: Optional[int] = None
    type: str = LOAN_TYPE_FIXED
    draw_months: Optional[int] = None
    repay_months: Optional[int] = None


@dataclass
class AdditionalCosts:
    property_tax: float = 0.0
    insurance: float = 0.0
    pmi: float = 0.0
    other: float = 0.0

    @property
    def total(self) -> float:
        return self.property_tax + self.insurance + self.pmi + self.other


@dataclass
class BlendedParams:
    home_value: float
    first_mortgage: ComponentInput
    down_payment: float = 0.0
    second_mortgage: ComponentInput = field(default_factory=lambda: ComponentInput(type=LOAN_TYPE_HELOC))
    additional_components: List[ComponentInput] = field(default_factory=list)
    additional_costs: AdditionalCosts = field(default_factory=AdditionalCosts)


@dataclass
class ComponentResult:
    amount: float
    rate: float
    type: str
    term: Optional[int]
    monthly_payment: float
    total_interest: float
    total_paid: float
    payoff_time: PayoffTime
    draw_months: Optional[int] = None
    repay_months: Optional[int] = None


@dataclass
class TraditionalComparison:
    traditional_monthly_payment: float
    monthly_savings: float
    annual_savings: float


@dataclass
class CombinedMetrics:
    total_monthly_payment: float
    total_principal_interest: float
    total_interest: float
    total_principal: float
    total_amount_financed: float
    total_paid: float
    effective_blended_rate: float
    debt_to_income_ratio: float
    comparison: TraditionalComparison


@dataclass
class BlendedLtv:
    first_mortgage_ltv: float
    combined_ltv: float
    available_equity: float
    home_value: float
    total_loan_amount: float


@dataclass
class Assumption:
    key: str
    value: str
    phase: str
    rationale: str


@dataclass
class BlendedFlags:
    schedule_includes_additional: bool = False
    normalization_applied: bool = False
    zero_rate_handled: bool = False


@dataclass
class ComponentSlice:
    principal: float
    interest: float
    balance: float
    index: Optional[int] = None


@dataclass
class BlendedScheduleRow:
    payment_number: int
    first_mortgage: ComponentSlice
    second_mortgage: ComponentSlice
    additional_components: List[ComponentSlice]
    total_principal: float
    total_interest: float
    total_payment: float
    total_remaining_balance: float


@dataclass
class BlendedSchedule:
    rows: List[BlendedScheduleRow]
    normalization_applied: bool = False


@dataclass
class BlendedResult:
    home_value: float
    down_payment: float
    first_mortgage: ComponentResult
    second_mortgage: ComponentResult
    additional_components: List[ComponentResult]
    additional_costs: AdditionalCosts
    combined: CombinedMetrics
    ltv: BlendedLtv
    assumptions: List[Assumption]
    flags: BlendedFlags
    schedule: List[BlendedScheduleRow]
    calculated_at: str


# ---------------------------------------------------------------------------
# Purchase / refinance scenarios
# ---------------------------------------------------------------------------


@dataclass
class PurchaseScenarioInput:
    """A home purchase. ``pmi_rate`` is an annual percentage of the loan."""

    property_value: float
    down_payment_amount: float
    loan_term: int
    interest_rate: float
    pmi_rate: float = 0.0
    pmi_end_rule: float = 80.0
    property_tax: float = 0.0
    home_insurance: float = 0.0
    hoa: float = 0.0
    extra_payment: float = 0.0


@dataclass
class PurchaseScenarioResult:
    ltv: float
    loan_amount: float
    schedule: FixedLoanResult


@dataclass
class PmiClassification:
    state: str
    status_text: str
    badge_class: str
    ltv: float
    meets_threshold: bool


@dataclass
class RefinanceInput:
    current_balance: float
    appraised_value: float
    new_rate: float
    new_term: int
    closing_costs: float = 0.0
    finance_closing_costs: bool = False
    current_monthly_payment: float = 0.0
    fixed_monthly_pmi: Optional[float] = None
    pmi_end_rule: float = 80.0
    property_tax: float = 0.0
    home_insurance: float = 0.0
    hoa: float = 0.0
    extra_payment: float = 0.0


@dataclass
class RefinanceResult:
    loan_amount: float
    ltv: float
    cash_to_close: float
    monthly_pi_change: float
    break_even_months: Optional[int]
    schedule: FixedLoanResult

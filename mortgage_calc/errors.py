"""Exceptions raised by the calculators."""


class ValidationError(ValueError):
    """Blocking, user-facing input error.

    Only two places raise it: the HELOC repayment-period check and the
    blended-mortgage input validation. Everything else degrades to zeroed
    results instead.
    """

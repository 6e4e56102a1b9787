"""Formatting utilities for currency and due-date labels."""

from __future__ import annotations

from typing import Union

from .models import Bucket


def escape_dollar_for_markdown(amount: float) -> str:
    """Format a dollar amount and escape the dollar sign for markdown rendering.

    Streamlit markdown treats ``$`` as a LaTeX delimiter, so two amounts on
    one line would otherwise render as italic math.

    Example:
        >>> escape_dollar_for_markdown(1234.56)
        '\\\\$1,234.56'
    """
    return f"${amount:,.2f}".replace("$", "\\$")


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount with proper formatting.

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(1234.56, include_sign=False)
        '1,234.56'
    """
    formatted = f"{amount:,.2f}"
    return f"${formatted}" if include_sign else formatted


def kind_label(bucket: Bucket) -> str:
    return {"credit": "Credit", "loan": "Loan"}.get(bucket.kind, "Bill")


def due_label(bucket: Bucket) -> str:
    """Short due description: the ISO date if known, else the free-text note."""
    if bucket.due_date:
        return f"Due {bucket.due_date}"
    return bucket.due or "No due date"


def bucket_summary(bucket: Bucket) -> str:
    parts = [kind_label(bucket), f"P{bucket.priority}", due_label(bucket)]
    if bucket.is_monthly:
        parts.append("Monthly")
    return " · ".join(parts)

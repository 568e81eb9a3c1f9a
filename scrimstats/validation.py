# scrimstats/validation.py
"""
Batch validation for parsed export rows.

Any failure here aborts the whole import before anything is written, so
the checks run over every row and report all problems at once.
"""

from dataclasses import replace
from typing import List, Sequence, Tuple

from scrimstats import config
from scrimstats.models import MatchRow


def validate_rows(rows: Sequence[MatchRow]) -> Tuple[List[MatchRow], List[str]]:
    """
    Validate parsed rows and normalize their result and color spellings.

    Rules:
    1. result must be WIN or LOSS (any case)
    2. team color must be a known color (any case)
    3. goals, assists, saves, shots and demos must be >= 0

    Args:
        rows: Rows produced by MatchExportParser

    Returns:
        (normalized_rows, errors)
        - normalized_rows: rows with result upper-cased and color in its
          canonical spelling; empty when any error was found
        - errors: one message per problem, in row order

    Examples:
        >>> rows, errors = validate_rows([row_with_result('DRAW')])
        >>> rows
        []
        >>> "invalid result 'DRAW'" in errors[0]
        True
    """
    errors: List[str] = []
    normalized: List[MatchRow] = []

    for row in rows:
        row_errors = []
        label = f"Row {row.line_number}" if row.line_number else f"Player '{row.external_player_name}'"

        result = row.result.strip().upper()
        if result not in (config.RESULT_WIN, config.RESULT_LOSS):
            row_errors.append(
                f"{label}: invalid result '{row.result}' (expected {config.RESULT_WIN} or {config.RESULT_LOSS})"
            )

        color = config.canonical_color(row.team_color)
        if color is None:
            row_errors.append(
                f"{label}: unknown team color '{row.team_color}' (expected {' or '.join(config.TEAM_COLORS)})"
            )

        for stat in config.STAT_FIELDS:
            value = getattr(row, stat)
            if value < 0:
                row_errors.append(f"{label}: {stat} cannot be negative ({value})")

        if row_errors:
            errors.extend(row_errors)
            continue

        normalized.append(replace(row, result=result, team_color=color))

    if errors:
        return [], errors
    return normalized, errors


def format_validation_errors(errors: Sequence[str], limit: int = config.MAX_RENDERED_ERRORS) -> List[str]:
    """Cap an error list for display, noting how many were left out."""
    shown = list(errors[:limit])
    remaining = len(errors) - len(shown)
    if remaining > 0:
        shown.append(f"... and {remaining} more error(s)")
    return shown

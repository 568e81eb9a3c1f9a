# scrimstats/matches.py
"""Match grouping and MVP selection."""

from typing import Dict, List, Optional, Sequence

from scrimstats.models import MatchGroup, MatchRow


def group_matches(rows: Sequence[MatchRow]) -> List[MatchGroup]:
    """
    Partition admitted rows into matches by exact timestamp token.

    No tolerance window or clock normalization: two rows belong to the
    same match only if their timestamps are identical strings. Groups
    come back in first-seen order.
    """
    groups: Dict[str, MatchGroup] = {}
    for row in rows:
        group = groups.get(row.match_timestamp)
        if group is None:
            group = MatchGroup(match_timestamp=row.match_timestamp)
            groups[row.match_timestamp] = group
        group.rows.append(row)
    return list(groups.values())


def select_mvp(group: MatchGroup) -> Optional[MatchRow]:
    """
    Pick the highest-scoring winner of a match.

    Ties keep the first maximal row in group order. Returns None when
    no row in the group is a win.
    """
    best: Optional[MatchRow] = None
    for row in group.rows:
        if not row.is_win:
            continue
        if best is None or row.score > best.score:
            best = row
    return best


def select_mvps(groups: Sequence[MatchGroup]) -> Dict[str, MatchRow]:
    """MVP row per match timestamp, for matches that have one."""
    mvps: Dict[str, MatchRow] = {}
    for group in groups:
        mvp = select_mvp(group)
        if mvp is not None:
            mvps[group.match_timestamp] = mvp
    return mvps

"""
Qualification selection: turns completed groups into knockout qualifiers.
"""
import logging
from typing import Dict, List

from tournament.standings import rank_rows

logger = logging.getLogger(__name__)

# Number of third-placed teams that go through, by group count.
BEST_THIRD_QUOTAS = {3: 2, 6: 4}

# Rows that qualify directly from each group, by group count. With one or two
# groups the bracket needs four and eight teams, so every finisher goes through.
DIRECT_QUALIFIERS = {1: 4, 2: 4, 3: 2, 4: 2, 6: 2, 8: 2}

POSITION_KEYS = ('winners', 'runners_up', 'thirds', 'fourths')


def _entry(group, row: Dict, position: int) -> Dict:
    return {
        'team_id': row['team_id'],
        'name': row['name'],
        'group': group.name,
        'group_id': group.id,
        'position': position,
    }


def empty_qualifiers() -> Dict[str, List[Dict]]:
    qualifiers = {key: [] for key in POSITION_KEYS}
    qualifiers['best_thirds'] = []
    return qualifiers


def select_qualifiers(groups: List) -> Dict[str, List[Dict]]:
    """
    Categorize the qualifiers of a finished group stage.

    Returns a dict with ``winners`` and ``runners_up`` (one per group, in group
    order), ``best_thirds`` (only for 3 or 6 groups, ranked best first) and, for
    one or two groups, ``thirds`` and ``fourths``. Each entry is tagged with the
    group it came from. Standings rows are flagged ``qualified`` / ``best_third``
    as a side effect.
    """
    unfinished = [g.name for g in groups if not g.is_completed()]
    if unfinished:
        raise ValueError(f"Groups not completed: {', '.join(unfinished)}")

    group_count = len(groups)
    direct_count = DIRECT_QUALIFIERS.get(group_count, 2)
    quota = BEST_THIRD_QUOTAS.get(group_count, 0)

    qualifiers = empty_qualifiers()
    candidates = []
    for group in groups:
        standings = group.mark_qualified_teams(direct_count, include_best_third=quota > 0)
        for index in range(min(direct_count, len(standings))):
            qualifiers[POSITION_KEYS[index]].append(_entry(group, standings[index], index + 1))
        if quota and len(standings) > 2:
            candidates.append((group, standings[2]))

    if quota:
        qualifiers['best_thirds'] = _select_best_thirds(candidates, quota)

    logger.debug("Qualifiers for %d groups: %d winners, %d runners-up, %d best thirds",
                 group_count, len(qualifiers['winners']), len(qualifiers['runners_up']),
                 len(qualifiers['best_thirds']))
    return qualifiers


def _select_best_thirds(candidates, quota: int) -> List[Dict]:
    # Third-placed teams from different groups never met, so ranking them
    # without matches leaves the head-to-head step undecided.
    by_team = {row['team_id']: group for group, row in candidates}
    ranked = rank_rows([row for _, row in candidates])

    selected = []
    for index, row in enumerate(ranked):
        if index < quota:
            row['qualified'] = True
            row['best_third'] = True
            selected.append(_entry(by_team[row['team_id']], row, 3))
        else:
            row['best_third'] = False
    return selected


def qualified_team_ids(qualifiers: Dict[str, List[Dict]]) -> List[str]:
    return [entry['team_id'] for entries in qualifiers.values() for entry in entries]

"""
Group standings calculation.
"""
from itertools import groupby
from typing import Dict, Iterable, List, Optional

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1


def _empty_row(team) -> Dict:
    return {
        'team_id': team.id,
        'name': team.name,
        'played': 0,
        'won': 0,
        'drawn': 0,
        'lost': 0,
        'goals_for': 0,
        'goals_against': 0,
        'goal_difference': 0,
        'points': 0,
        'qualified': False,
        'best_third': False,
    }


def counts_for_standings(match) -> bool:
    """Only played matches with both scores present earn anything."""
    return match.played and match.home_score is not None and match.away_score is not None


def _record(row: Dict, scored: int, conceded: int):
    row['played'] += 1
    row['goals_for'] += scored
    row['goals_against'] += conceded
    if scored > conceded:
        row['won'] += 1
        row['points'] += POINTS_FOR_WIN
    elif scored < conceded:
        row['lost'] += 1
    else:
        row['drawn'] += 1
        row['points'] += POINTS_FOR_DRAW


def head_to_head(team_a, team_b, matches: Iterable) -> int:
    """
    Net result of played matches between exactly *team_a* and *team_b*.

    Returns 1 if team_a came out ahead, -1 if team_b did, 0 if level or if
    they have not met.
    """
    balance = 0
    for match in matches:
        if not counts_for_standings(match):
            continue
        if {match.home_team_id, match.away_team_id} != {team_a, team_b}:
            continue
        if match.home_score == match.away_score:
            continue
        home_won = match.home_score > match.away_score
        a_won = home_won if match.home_team_id == team_a else not home_won
        balance += 1 if a_won else -1
    return (balance > 0) - (balance < 0)


def _record_key(row: Dict):
    return -row['points'], -row['goal_difference'], -row['goals_for']


def _break_tie(block: List[Dict], matches: Optional[List]) -> List[Dict]:
    """
    Order rows level on points, goal difference and goals for.

    Each row scores its net head-to-head balance against the others in the
    block (only when *matches* is given), then name, then team id. With two
    rows this is the plain head-to-head result; a three-way cycle cancels out.
    """
    balance = {row['team_id']: 0 for row in block}
    if matches and len(block) > 1:
        for row in block:
            for other in block:
                if other is not row:
                    balance[row['team_id']] += head_to_head(row['team_id'], other['team_id'], matches)
    return sorted(block, key=lambda row: (-balance[row['team_id']], row['name'], row['team_id']))


def rank_rows(rows: Iterable[Dict], matches: Optional[List] = None) -> List[Dict]:
    """
    Sort rows best first: points, goal difference, goals for, head-to-head
    within the level block, name, team id. Independent of input order.
    """
    ranked = []
    for _, block in groupby(sorted(rows, key=_record_key), key=_record_key):
        ranked.extend(_break_tie(list(block), matches))
    return ranked


def compute_standings(teams: Iterable, matches: Iterable) -> List[Dict]:
    """
    Build a standings table from scratch.

    Returns one row per team with played/won/drawn/lost, goals for/against,
    goal difference and points, sorted best first. Unplayed matches and
    matches involving teams outside *teams* are ignored.
    """
    rows = {team.id: _empty_row(team) for team in teams}
    counted = []

    for match in matches:
        if not counts_for_standings(match):
            continue
        home = rows.get(match.home_team_id)
        away = rows.get(match.away_team_id)
        if home is None or away is None:
            continue
        _record(home, match.home_score, match.away_score)
        _record(away, match.away_score, match.home_score)
        counted.append(match)

    for row in rows.values():
        row['goal_difference'] = row['goals_for'] - row['goals_against']

    return rank_rows(rows.values(), counted)

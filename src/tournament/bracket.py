"""
Knockout bracket generation and progression.

A round's matches are ordered by bracket slot: slots ``i`` and ``i + 1`` (``i``
even) feed slot ``i // 2`` of the next round, the even slot's winner playing at
home.
"""
import logging
from itertools import permutations
from typing import Dict, List, Optional, Tuple

from tournament.models import KnockoutContext, Match, TournamentConfigError

logger = logging.getLogger(__name__)

SUPPORTED_GROUP_COUNTS = (1, 2, 3, 4, 6, 8)

ROUND_PREFIXES = {
    'Round of 16': 'R16',
    'Quarterfinals': 'QF',
    'Semifinals': 'SF',
    'Final': 'F',
}


def get_round_name(matches_in_round: int) -> str:
    """Get the name of a round based on how many matches it holds."""
    if matches_in_round == 1:
        return "Final"
    elif matches_in_round == 2:
        return "Semifinals"
    elif matches_in_round == 4:
        return "Quarterfinals"
    elif matches_in_round == 8:
        return "Round of 16"
    else:
        return f"Round of {matches_in_round * 2}"


def bracket_order(bracket_size: int) -> List[int]:
    """
    Standard seed order for a bracket of *bracket_size* seeds.

    For 4 seeds: [1, 4, 2, 3], i.e. 1v4 and 2v3, so the top two seeds can
    only meet in the final.
    """
    if bracket_size == 2:
        return [1, 2]

    upper_half = bracket_order(bracket_size // 2)
    lower_half = [bracket_size + 1 - seed for seed in upper_half]

    result = []
    for upper, lower in zip(upper_half, lower_half):
        result.extend([upper, lower])
    return result


class Round:
    def __init__(self, arena, name: str, index: int, match_ids=None):
        self.arena = arena
        self.name = name
        self.index = index
        self.match_ids = list(match_ids) if match_ids else []

    @property
    def matches(self) -> List[Match]:
        return [self.arena.matches[match_id] for match_id in self.match_ids]

    def is_completed(self) -> bool:
        return bool(self.match_ids) and all(m.played and m.winner for m in self.matches)

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'index': self.index,
            'matches': [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, arena, data: Dict) -> 'Round':
        match_ids = []
        for match_data in data.get('matches', []):
            match_ids.append(arena.add_match(Match.from_dict(match_data)).id)
        return cls(arena, data['name'], data['index'], match_ids)

    def __repr__(self):
        return f"Round(name={self.name}, matches={self.match_ids})"


# First-round pairings ------------------------------------------------------

def _avoid_rematches(homes: List, aways: List) -> List[Tuple]:
    """
    Pair *homes* with *aways* in the given order unless that pits two teams from
    the same group against each other; then use the first reordering of *aways*
    that avoids it. Falls back to the given order when no reordering does.
    """
    for candidate in permutations(aways):
        if all(h['group_id'] != a['group_id'] for h, a in zip(homes, candidate)):
            return list(zip(homes, candidate))
    return list(zip(homes, aways))


def _pairings_one_group(q) -> List[Tuple]:
    seeds = q['winners'] + q['runners_up'] + q['thirds'] + q['fourths']
    by_seed = dict(enumerate(seeds, start=1))
    order = bracket_order(4)
    return [(by_seed.get(order[i]), by_seed.get(order[i + 1])) for i in range(0, len(order), 2)]


def _pairings_two_groups(q) -> List[Tuple]:
    w, r, t, f = q['winners'], q['runners_up'], q['thirds'], q['fourths']
    return [
        (_at(w, 0), _at(r, 1)),
        (_at(w, 1), _at(r, 0)),
        (_at(t, 0), _at(f, 1)),
        (_at(t, 1), _at(f, 0)),
    ]


def _pairings_three_groups(q) -> List[Tuple]:
    w, r, b = q['winners'], q['runners_up'], q['best_thirds']
    homes = [_at(w, 0), _at(w, 1), _at(w, 2), _at(r, 0)]
    aways = [_at(b, 0), _at(r, 2), _at(r, 1), _at(b, 1)]
    if None in homes or None in aways:
        return list(zip(homes, aways))
    return _avoid_rematches(homes, aways)


def _pairings_four_groups(q) -> List[Tuple]:
    w, r = q['winners'], q['runners_up']
    return [(_at(w, i), _at(r, 3 - i)) for i in range(4)]


def _pairings_six_groups(q) -> List[Tuple]:
    w, r, b = q['winners'], q['runners_up'], q['best_thirds']
    pairings = [(_at(w, i), _at(r, 3 - i)) for i in range(4)]
    homes = [_at(w, 4), _at(w, 5), _at(r, 5), _at(r, 4)]
    aways = [_at(b, i) for i in range(4)]
    if None in homes or None in aways:
        return pairings + list(zip(homes, aways))
    return pairings + _avoid_rematches(homes, aways)


def _pairings_eight_groups(q) -> List[Tuple]:
    w, r = q['winners'], q['runners_up']
    pairings = [(_at(w, i), _at(r, 3 - i)) for i in range(4)]
    pairings += [(_at(w, 4 + i), _at(r, 7 - i)) for i in range(4)]
    return pairings


def _at(entries: List, index: int):
    return entries[index] if index < len(entries) else None


PAIRING_RULES = {
    1: _pairings_one_group,
    2: _pairings_two_groups,
    3: _pairings_three_groups,
    4: _pairings_four_groups,
    6: _pairings_six_groups,
    8: _pairings_eight_groups,
}


def first_round_pairings(qualifiers: Dict[str, List[Dict]], group_count: int) -> List[Tuple]:
    """Return (home, away) qualifier entries for the first knockout round."""
    rule = PAIRING_RULES.get(group_count)
    if rule is None:
        raise TournamentConfigError(
            f"Unsupported group count {group_count}; expected one of {SUPPORTED_GROUP_COUNTS}"
        )
    return rule(qualifiers)


def generate_bracket(arena, qualifiers: Dict[str, List[Dict]], group_count: int) -> List[Round]:
    """
    Build every knockout round and register its matches in *arena*.

    The first round is seeded from *qualifiers*; later rounds start with TBD
    slots. A first-round slot missing either side is left out.
    """
    pairings = first_round_pairings(qualifiers, group_count)
    rounds = []

    size = len(pairings)
    index = 0
    while size >= 1:
        name = get_round_name(size)
        prefix = ROUND_PREFIXES.get(name, f"R{size * 2}")
        current = Round(arena, name, index)
        for slot in range(size):
            home_id = away_id = None
            if index == 0:
                home, away = pairings[slot]
                if home is None or away is None:
                    logger.debug("Skipping %s slot %d: not enough qualifiers", name, slot)
                    continue
                home_id, away_id = home['team_id'], away['team_id']
            match = Match(f"{prefix}-{slot + 1}", home_id, away_id, KnockoutContext(name, index, slot))
            arena.add_match(match)
            current.match_ids.append(match.id)
        rounds.append(current)
        size //= 2
        index += 1

    logger.info("Generated bracket for %d groups: %s", group_count,
                ', '.join(f"{r.name} ({len(r.match_ids)})" for r in rounds))
    return rounds


# Progression ---------------------------------------------------------------

def locate_match(rounds: List[Round], match_id) -> Optional[Tuple[int, int]]:
    """Return (round_index, match_index) of *match_id*, or None."""
    for round_index, knockout_round in enumerate(rounds):
        if match_id in knockout_round.match_ids:
            return round_index, knockout_round.match_ids.index(match_id)
    return None


def bracket_slot(match: Match, fallback: int) -> int:
    """The slot a match was generated for, which can differ from its list position."""
    if isinstance(match.context, KnockoutContext):
        return match.context.slot
    return fallback


def _next_slot(rounds: List[Round], round_index: int, slot: int):
    next_slot = slot // 2
    for index, candidate in enumerate(rounds[round_index + 1].matches):
        if bracket_slot(candidate, index) == next_slot:
            side = 'home_team_id' if slot % 2 == 0 else 'away_team_id'
            return candidate, next_slot, side
    return None, None, None


def advance_winner(rounds: List[Round], round_index: int, match_index: int):
    """
    Write the winner of a decided match into its next-round slot.

    Returns the winner's team id when the match is the final (the champion),
    otherwise None. If the slot already held a different team, the next match's
    result and everything that depended on it further down is cleared.
    """
    match = rounds[round_index].matches[match_index]
    if not match.played or match.winner is None:
        return None

    if round_index == len(rounds) - 1:
        return match.winner

    next_match, next_slot, side = _next_slot(rounds, round_index, bracket_slot(match, match_index))
    if next_match is None:
        return None

    previous = getattr(next_match, side)
    if previous == match.winner:
        return None

    setattr(next_match, side, match.winner)
    logger.debug("%s advances to %s", match.winner, next_match.id)
    if previous is not None and next_match.played:
        next_match.clear_result()
        clear_downstream(rounds, round_index + 1, next_slot)
    return None


def clear_downstream(rounds: List[Round], round_index: int, slot: int):
    """Empty the next-round slot fed by bracket *slot* of a cleared match, recursively."""
    if round_index >= len(rounds) - 1:
        return
    next_match, next_slot, side = _next_slot(rounds, round_index, slot)
    if next_match is None or getattr(next_match, side) is None:
        return
    setattr(next_match, side, None)
    if next_match.played:
        next_match.clear_result()
    clear_downstream(rounds, round_index + 1, next_slot)

"""
Shared pytest fixtures for the tournament engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip full-tournament simulations
"""
import pytest
import random
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tournament.engine import Tournament
from tournament.models import Arena, Team


def team_names(count):
    return [f"Team {number:02d}" for number in range(1, count + 1)]


def play_group_by_order(tournament, group):
    """Play a group so the final table follows ``group.team_ids`` order (9, 6, 3, 0 points)."""
    for match in list(group.matches):
        if match.played:
            continue
        home_rank = group.team_ids.index(match.home_team_id)
        away_rank = group.team_ids.index(match.away_team_id)
        score = (2, 0) if home_rank < away_rank else (0, 2)
        tournament.update_match_result(match.id, *score)


@pytest.fixture
def arena():
    """An arena holding four teams A-D with ids a-d."""
    arena = Arena()
    for letter in 'ABCD':
        arena.add_team(Team(letter.lower(), letter))
    return arena


@pytest.fixture
def make_tournament():
    """Factory building a reproducible tournament with ``group_count`` groups."""
    def _make(group_count=2, seed=7, notifier=None):
        return Tournament.create('Test Cup', group_count, team_names(group_count * 4),
                                 rng=random.Random(seed), notifier=notifier)
    return _make


@pytest.fixture
def play_group_stage():
    """Play every group of a tournament in team-list order."""
    def _play(tournament):
        for group in tournament.groups:
            play_group_by_order(tournament, group)
        return tournament
    return _play


@pytest.fixture
def play_knockout():
    """Play every knockout round, home side always winning 1-0."""
    def _play(tournament):
        for knockout_round in tournament.rounds:
            for match in knockout_round.matches:
                tournament.update_match_result(match.id, 1, 0)
        return tournament
    return _play


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Flask test client with the data directory redirected to tmp_path."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client

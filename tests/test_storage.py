"""
Tests for YAML tournament storage.
"""
import pytest
import sys
import os
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tournament.storage import TournamentStore


@pytest.fixture
def store(tmp_path):
    return TournamentStore(str(tmp_path))


class TestSaveLoad:
    """Tests for the persistence contract."""

    def test_round_trip(self, store, make_tournament, play_group_stage):
        tournament = play_group_stage(make_tournament(group_count=2))
        assert store.save_tournament(tournament) is True
        assert store.load(tournament.id) == tournament.to_dict()

        restored = store.load_tournament(tournament.id)
        assert restored.stage == 'knockout'
        assert restored.get_round('Quarterfinals').match_ids == ['QF-1', 'QF-2', 'QF-3', 'QF-4']

    def test_file_layout(self, store, tmp_path, make_tournament):
        tournament = make_tournament(group_count=1)
        store.save_tournament(tournament)
        path = tmp_path / 'tournaments' / f'{tournament.id}.yaml'
        assert path.exists()
        registry = yaml.safe_load((tmp_path / 'tournaments.yaml').read_text())
        assert registry['tournaments'][0]['id'] == tournament.id

    def test_snapshot_has_no_yaml_aliases(self, store, tmp_path, make_tournament, play_group_stage):
        tournament = play_group_stage(make_tournament(group_count=3))
        store.save_tournament(tournament)
        text = (tmp_path / 'tournaments' / f'{tournament.id}.yaml').read_text()
        assert '&id' not in text
        assert '*id' not in text

    def test_load_missing(self, store):
        assert store.load('nope') is None
        assert store.load_tournament('nope') is None

    def test_rejects_unsafe_ids(self, store):
        assert store.save({'id': '../escape'}) is False
        assert store.load('../escape') is None
        assert store.delete('../escape') is False

    def test_corrupt_file_returns_none(self, store, tmp_path):
        (tmp_path / 'tournaments' / 'broken.yaml').write_text('groups: [unclosed')
        assert store.load('broken') is None

    def test_resave_updates_summary(self, store, make_tournament):
        tournament = make_tournament(group_count=1)
        store.save_tournament(tournament)
        tournament.update_match_result('A1', 1, 0)
        tournament.reset()
        tournament.update_match_result('A1', 2, 0)
        store.save_tournament(tournament)
        assert len(store.list_summaries()) == 1
        assert store.load(tournament.id)['groups'][0]['matches'][0]['home_score'] == 2


class TestRegistry:
    """Tests for listing, deleting and the active tournament."""

    def test_list_newest_first(self, store, make_tournament):
        older = make_tournament(group_count=1)
        newer = make_tournament(group_count=1)
        older.created_at = '2026-01-01T10:00:00'
        newer.created_at = '2026-02-01T10:00:00'
        store.save_tournament(older)
        store.save_tournament(newer)
        assert store.list() == [newer.id, older.id]

    def test_delete(self, store, make_tournament):
        tournament = make_tournament(group_count=1)
        store.save_tournament(tournament)
        store.set_active(tournament.id)
        assert store.delete(tournament.id) is True
        assert store.list() == []
        assert store.get_active_id() is None
        assert store.delete(tournament.id) is False

    def test_active(self, store, make_tournament):
        assert store.load_active() is None
        tournament = make_tournament(group_count=1)
        assert store.set_active(tournament.id) is False
        store.save_tournament(tournament)
        assert store.set_active(tournament.id) is True
        assert store.load_active()['id'] == tournament.id

    def test_lock_is_reentrant(self, store, make_tournament):
        tournament = make_tournament(group_count=1)
        with store.lock:
            assert store.save_tournament(tournament)
            assert store.load(tournament.id) is not None

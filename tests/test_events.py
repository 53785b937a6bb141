"""
Unit tests for the event log and notifier.
"""
import logging
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from tournament.events import EventLog, Notifier


class TestEventLog:
    def test_sequence_numbers(self):
        log = EventLog()
        first = log.append('match_updated', {'match_id': 'A1'})
        second = log.append('match_updated', {'match_id': 'A2'})
        assert (first.sequence, second.sequence) == (1, 2)
        assert log.last_sequence == 2
        assert len(log) == 2

    def test_since(self):
        log = EventLog()
        for match_id in ('A1', 'A2', 'A3'):
            log.append('match_updated', {'match_id': match_id})
        assert [e.payload['match_id'] for e in log.since(1)] == ['A2', 'A3']
        assert log.since(3) == []

    def test_payload_copied(self):
        payload = {'match_id': 'A1'}
        event = EventLog().append('match_updated', payload)
        payload['match_id'] = 'changed'
        assert event.payload['match_id'] == 'A1'

    def test_round_trip(self):
        log = EventLog()
        log.append('tournament_created', {'name': 'Cup'})
        restored = EventLog.from_list(log.to_list())
        assert restored.to_list() == log.to_list()
        assert EventLog.from_list(None).last_sequence == 0


class TestNotifier:
    def test_listeners_called_in_order(self):
        notifier = Notifier()
        calls = []
        notifier.add_listener(lambda kind, payload: calls.append(('first', kind)))
        notifier.add_listener(lambda kind, payload: calls.append(('second', kind)))
        notifier.emit('stage_changed', {})
        assert calls == [('first', 'stage_changed'), ('second', 'stage_changed')]

    def test_listener_registered_once(self):
        notifier = Notifier()
        calls = []

        def listener(kind, payload):
            calls.append(kind)

        notifier.add_listener(listener)
        notifier.add_listener(listener)
        notifier.emit('tournament_loaded')
        assert calls == ['tournament_loaded']

    def test_failure_logged_and_others_still_called(self, caplog):
        notifier = Notifier()
        calls = []

        def broken(kind, payload):
            raise RuntimeError('boom')

        notifier.add_listener(broken)
        notifier.add_listener(lambda kind, payload: calls.append(kind))
        with caplog.at_level(logging.ERROR, logger='tournament.events'):
            notifier.emit('match_updated', {'match_id': 'A1'})
        assert calls == ['match_updated']
        assert 'match_updated' in caplog.text

"""
YAML file persistence for serialized tournaments.

Layout under the data directory::

    tournaments.yaml          registry: active id + one summary per tournament
    tournaments/<id>.yaml     full snapshot of one tournament
    .lock                     FileLock guarding both
"""
import logging
import os
import re
from typing import Dict, List, Optional

import yaml
from filelock import FileLock

from tournament.engine import Tournament

logger = logging.getLogger(__name__)

REGISTRY_FILE = 'tournaments.yaml'
TOURNAMENTS_DIR = 'tournaments'
SUMMARY_KEYS = ('id', 'name', 'group_count', 'stage', 'status', 'created_at', 'updated_at')

_VALID_ID = re.compile(r'^[a-z0-9][a-z0-9-]*$')


def is_valid_id(tournament_id) -> bool:
    return isinstance(tournament_id, str) and bool(_VALID_ID.match(tournament_id))


class TournamentStore:
    def __init__(self, data_dir: str, timeout: float = 10):
        self.data_dir = data_dir
        self.tournaments_dir = os.path.join(data_dir, TOURNAMENTS_DIR)
        self.registry_file = os.path.join(data_dir, REGISTRY_FILE)
        os.makedirs(self.tournaments_dir, exist_ok=True)
        # Reentrant for this instance, so callers can hold it across load/save.
        self.lock = FileLock(os.path.join(data_dir, '.lock'), timeout=timeout)

    def _path(self, tournament_id) -> str:
        return os.path.join(self.tournaments_dir, f"{tournament_id}.yaml")

    def _read_yaml(self, path: str):
        if not os.path.exists(path):
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not read %s: %s", path, e)
            return None

    def _write_yaml(self, path: str, data) -> bool:
        tmp_path = path + '.tmp'
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not write %s: %s", path, e)
            return False

    def _load_registry(self) -> Dict:
        registry = self._read_yaml(self.registry_file)
        if not isinstance(registry, dict):
            registry = {}
        registry.setdefault('active', None)
        registry.setdefault('tournaments', [])
        return registry

    # Persistence contract --------------------------------------------------

    def save(self, data: Dict) -> bool:
        """Write a serialized tournament and refresh its registry summary."""
        tournament_id = data.get('id') if isinstance(data, dict) else None
        if not is_valid_id(tournament_id):
            logger.warning("Refusing to save tournament with id %r", tournament_id)
            return False

        with self.lock:
            if not self._write_yaml(self._path(tournament_id), data):
                return False
            registry = self._load_registry()
            summary = {key: data.get(key) for key in SUMMARY_KEYS}
            registry['tournaments'] = [t for t in registry['tournaments'] if t.get('id') != tournament_id]
            registry['tournaments'].append(summary)
            return self._write_yaml(self.registry_file, registry)

    def load(self, tournament_id) -> Optional[Dict]:
        if not is_valid_id(tournament_id):
            return None
        with self.lock:
            data = self._read_yaml(self._path(tournament_id))
        return data if isinstance(data, dict) else None

    def list(self) -> List[str]:
        return [summary['id'] for summary in self.list_summaries()]

    def list_summaries(self) -> List[Dict]:
        """Registry summaries, newest first."""
        with self.lock:
            registry = self._load_registry()
        return sorted(registry['tournaments'], key=lambda t: t.get('created_at') or '', reverse=True)

    def delete(self, tournament_id) -> bool:
        if not is_valid_id(tournament_id):
            return False
        with self.lock:
            path = self._path(tournament_id)
            if not os.path.exists(path):
                return False
            try:
                os.remove(path)
            except OSError as e:
                logger.warning("Could not delete %s: %s", path, e)
                return False
            registry = self._load_registry()
            registry['tournaments'] = [t for t in registry['tournaments'] if t.get('id') != tournament_id]
            if registry['active'] == tournament_id:
                registry['active'] = None
            return self._write_yaml(self.registry_file, registry)

    # Active tournament ---------------------------------------------------

    def set_active(self, tournament_id) -> bool:
        with self.lock:
            if not is_valid_id(tournament_id) or not os.path.exists(self._path(tournament_id)):
                return False
            registry = self._load_registry()
            registry['active'] = tournament_id
            return self._write_yaml(self.registry_file, registry)

    def get_active_id(self) -> Optional[str]:
        with self.lock:
            return self._load_registry()['active']

    def load_active(self) -> Optional[Dict]:
        active = self.get_active_id()
        return self.load(active) if active else None

    # Engine helpers ------------------------------------------------------

    def save_tournament(self, tournament: Tournament) -> bool:
        return self.save(tournament.to_dict())

    def load_tournament(self, tournament_id, notifier=None) -> Optional[Tournament]:
        data = self.load(tournament_id)
        if data is None:
            return None
        return Tournament.from_dict(data, notifier)

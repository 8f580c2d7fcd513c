"""
Stockage en mémoire de la file d'attente : groupes, paramètres et personnel.
L'état est perdu au redémarrage du processus.
"""
import logging
import threading
from datetime import datetime

from models import DEFAULT_SETTINGS, Group, GroupStatus, QueueSettings, Setting, Staff

logger = logging.getLogger(__name__)


class DuplicateStaffError(Exception):
    """Un membre du personnel porte déjà ce nom."""


def _average_duration(groups):
    """Durée moyenne en minutes (arrondie) des groupes terminés, ou None."""
    durations = [
        (g.end_time - g.start_time).total_seconds() / 60
        for g in groups
        if g.status == GroupStatus.COMPLETED and g.start_time and g.end_time
    ]
    if not durations:
        return None
    return round(sum(durations) / len(durations))


class QueueStore:

    def __init__(self, staff_roster=()):
        self._lock = threading.RLock()
        self._groups = {}      # Groupes par identifiant
        self._settings = {}    # Paramètres par clé
        self._staff = {}       # Personnel par identifiant
        self._next_group_id = 1
        self._next_setting_id = 1
        self._next_staff_id = 1

        for key, value in DEFAULT_SETTINGS.items():
            self.set_setting(key, value)
        for name in staff_roster:
            self.create_staff(name)

    # --- Groupes ---

    def get_groups(self):
        with self._lock:
            return sorted(self._groups.values(), key=lambda g: g.queue_position)

    def get_group(self, group_id):
        return self._groups.get(group_id)

    def create_group(self, data):
        """
        Crée un groupe à partir d'un dictionnaire de champs (noms Python).
        La position en file vaut le maximum existant + 1.
        """
        with self._lock:
            group_id = self._next_group_id
            self._next_group_id += 1
            activity_duration = data.get("activity_duration") or self.queue_settings().activity_duration
            group = Group(
                id=group_id,
                members=list(data["members"]),
                queue_position=self._next_queue_position(),
                activity_duration=activity_duration,
                registration_time=datetime.now(),
                status=data.get("status") or GroupStatus.WAITING,
                contact_name=data.get("contact_name"),
                assigned_staff=data.get("assigned_staff"),
                notes=data.get("notes"),
                present=bool(data.get("present")),
                start_time=data.get("start_time"),
                end_time=data.get("end_time"),
            )
            self._groups[group_id] = group
        logger.info("Nouveau groupe enregistré : #%s (%s personnes, position %s)",
                    group.id, group.size, group.queue_position)
        return group

    def update_group(self, group_id, updates):
        """Fusion superficielle des champs fournis. Renvoie None si inconnu."""
        with self._lock:
            group = self._groups.get(group_id)
            if group is None:
                return None
            for name, value in updates.items():
                if name in ("id", "queue_position", "registration_time", "size"):
                    continue
                if not hasattr(group, name):
                    continue
                if name == "members":
                    value = list(value)
                setattr(group, name, value)
        return group

    def delete_group(self, group_id):
        with self._lock:
            return self._groups.pop(group_id, None) is not None

    def get_queued_groups(self):
        with self._lock:
            waiting = [g for g in self._groups.values() if g.status == GroupStatus.WAITING]
        return sorted(waiting, key=lambda g: g.queue_position)

    def get_in_progress_groups(self):
        with self._lock:
            active = [g for g in self._groups.values() if g.status == GroupStatus.IN_PROGRESS]
        return sorted(active, key=lambda g: g.start_time or datetime.min)

    def _next_queue_position(self):
        if not self._groups:
            return 1
        return max(g.queue_position for g in self._groups.values()) + 1

    def stats(self):
        groups = self.get_groups()
        return {
            "totalVisitors": sum(g.size for g in groups),
            "groupsInQueue": sum(1 for g in groups if g.status == GroupStatus.WAITING),
            "completedToday": sum(1 for g in groups if g.status == GroupStatus.COMPLETED),
            "totalGroups": len(groups),
            "averageDuration": _average_duration(groups),
        }

    # --- Paramètres ---

    def get_setting(self, key):
        return self._settings.get(key)

    def set_setting(self, key, value):
        with self._lock:
            existing = self._settings.get(key)
            if existing is not None:
                existing.value = value
                return existing
            setting = Setting(id=self._next_setting_id, key=key, value=value)
            self._next_setting_id += 1
            self._settings[key] = setting
            return setting

    def get_settings(self):
        with self._lock:
            return list(self._settings.values())

    def queue_settings(self):
        with self._lock:
            values = {s.key: s.value for s in self._settings.values()}
        return QueueSettings.from_settings(values)

    # --- Personnel ---

    def get_staff(self):
        with self._lock:
            return list(self._staff.values())

    def get_staff_member(self, staff_id):
        return self._staff.get(staff_id)

    def create_staff(self, name):
        with self._lock:
            if any(member.name == name for member in self._staff.values()):
                raise DuplicateStaffError(name)
            member = Staff(id=self._next_staff_id, name=name)
            self._next_staff_id += 1
            self._staff[member.id] = member
        return member

    def delete_staff(self, staff_id):
        # Les groupes qui référencent ce nom ne sont pas modifiés
        with self._lock:
            return self._staff.pop(staff_id, None) is not None

"""
Estimation du temps d'attente.

Les créneaux d'activité sont vus comme un groupe de `concurrent_groups`
postes servis par tournées de durée fixe, en ordre FIFO strict. C'est une
approximation par tournées (plafond), recalculée à chaque rafraîchissement.
"""
import math
from datetime import datetime, timedelta
from typing import NamedTuple

from models import GroupStatus

NOW_LABEL = "Now"


class WaitEstimate(NamedTuple):
    wait_minutes: int
    estimated_time: str

    def to_dict(self):
        return {"waitMinutes": self.wait_minutes, "estimatedTime": self.estimated_time}


def format_clock_time(moment):
    """Heure au format 12 h, sans zéro initial : '3:05 PM'."""
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d} {suffix}"


def _estimate(wait_minutes, now):
    if wait_minutes <= 0:
        return WaitEstimate(0, NOW_LABEL)
    moment = (now or datetime.now()) + timedelta(minutes=wait_minutes)
    return WaitEstimate(wait_minutes, format_clock_time(moment))


def calculate_wait_time(groups, concurrent_groups, activity_duration_default,
                        target_group_id=None, now=None):
    """
    Calcule l'attente d'un groupe en file, ou celle d'un nouveau groupe
    qui s'inscrirait maintenant si `target_group_id` est absent.

    `concurrent_groups` doit être >= 1 (c'est à l'appelant de le garantir).
    Un groupe cible introuvable parmi les groupes en attente donne "Now".
    """
    waiting = sorted(
        (g for g in groups if g.status == GroupStatus.WAITING),
        key=lambda g: g.queue_position,
    )
    slots_in_use = sum(1 for g in groups if g.status == GroupStatus.IN_PROGRESS)
    available_slots = max(0, concurrent_groups - slots_in_use)

    if target_group_id is not None:
        target_index = next(
            (index for index, g in enumerate(waiting) if g.id == target_group_id),
            None,
        )
        if target_index is None or target_index < available_slots:
            return _estimate(0, now)

        groups_ahead_to_wait = target_index - available_slots
        batches_needed = math.ceil((groups_ahead_to_wait + 1) / concurrent_groups)
        duration = waiting[target_index].activity_duration or activity_duration_default
        return _estimate(batches_needed * duration, now)

    # Nouveau groupe ajouté en fin de file
    total_waiting = len(waiting)
    if total_waiting < concurrent_groups:
        return _estimate(0, now)

    groups_to_wait_for = total_waiting - available_slots + 1
    if groups_to_wait_for <= 0:
        return _estimate(0, now)

    batches_needed = math.ceil(groups_to_wait_for / concurrent_groups)
    return _estimate(batches_needed * activity_duration_default, now)


def overdue_groups(groups, activity_duration_default, now=None):
    """Groupes en cours, pris en charge, dont la durée d'activité est écoulée."""
    now = now or datetime.now()
    overdue = []
    for group in groups:
        # Seuls les groupes pris en charge par un animateur sont signalés
        if group.status != GroupStatus.IN_PROGRESS or group.start_time is None or not group.assigned_staff:
            continue
        duration = group.activity_duration or activity_duration_default
        if now >= group.start_time + timedelta(minutes=duration):
            overdue.append(group)
    return sorted(overdue, key=lambda g: g.start_time)

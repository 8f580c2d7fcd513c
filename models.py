"""
Modèles de données de la file d'attente : groupes, paramètres, personnel,
ainsi que les schémas de validation des requêtes entrantes.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class GroupStatus(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @property
    def rank(self):
        """Ordre de progression : waiting < in-progress < completed."""
        return list(GroupStatus).index(self)


DEFAULT_SETTINGS = {
    "concurrentGroups": "2",
    "activityDuration": "10",
    "isBreakTime": "false",
    "breakStartTime": "",
    "breakEndTime": "",
}


def _isoformat(value):
    return value.isoformat() if value is not None else None


def to_local_naive(value):
    """Ramène un datetime avec fuseau à l'heure locale sans fuseau."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


@dataclass
class Group:
    id: int
    members: List[str]
    queue_position: int
    activity_duration: int
    registration_time: datetime
    status: GroupStatus = GroupStatus.WAITING
    contact_name: Optional[str] = None
    assigned_staff: Optional[str] = None
    notes: Optional[str] = None
    present: bool = False
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def size(self):
        return len(self.members)

    def to_dict(self):
        return {
            "id": self.id,
            "contactName": self.contact_name,
            "members": list(self.members),
            "size": self.size,
            "status": self.status.value,
            "assignedStaff": self.assigned_staff,
            "notes": self.notes,
            "present": self.present,
            "registrationTime": _isoformat(self.registration_time),
            "startTime": _isoformat(self.start_time),
            "endTime": _isoformat(self.end_time),
            "queuePosition": self.queue_position,
            "activityDuration": self.activity_duration,
        }


@dataclass
class Setting:
    id: int
    key: str
    value: str

    def to_dict(self):
        return {"id": self.id, "key": self.key, "value": self.value}


@dataclass
class Staff:
    id: int
    name: str

    def to_dict(self):
        return {"id": self.id, "name": self.name}


def _parse_positive_int(raw, default):
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return max(1, value)


@dataclass
class QueueSettings:
    """
    Vue typée de la table des paramètres, passée explicitement à
    l'estimateur et aux handlers. Les valeurs numériques sont ramenées à 1
    au minimum.
    """
    concurrent_groups: int = 2
    activity_duration: int = 10
    is_break_time: bool = False
    break_start_time: str = ""
    break_end_time: str = ""

    @classmethod
    def from_settings(cls, values):
        return cls(
            concurrent_groups=_parse_positive_int(values.get("concurrentGroups"), 2),
            activity_duration=_parse_positive_int(values.get("activityDuration"), 10),
            is_break_time=str(values.get("isBreakTime", "")).strip().lower() == "true",
            break_start_time=values.get("breakStartTime") or "",
            break_end_time=values.get("breakEndTime") or "",
        )


# --- Schémas de validation (corps JSON en camelCase) ---

class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _clean_members(value):
    members = [name.strip() for name in value if name and name.strip()]
    if not members:
        raise ValueError("At least one group member is required")
    return members


MemberList = Annotated[List[str], Field(min_length=1), AfterValidator(_clean_members)]
LocalDatetime = Annotated[datetime, AfterValidator(to_local_naive)]


class GroupCreate(_Schema):
    members: MemberList
    contact_name: Optional[str] = None
    status: GroupStatus = GroupStatus.WAITING
    assigned_staff: Optional[str] = None
    notes: Optional[str] = None
    present: Optional[bool] = None
    start_time: Optional[LocalDatetime] = None
    end_time: Optional[LocalDatetime] = None
    activity_duration: Optional[int] = Field(default=None, ge=1)


class GroupUpdate(_Schema):
    members: Optional[MemberList] = None
    contact_name: Optional[str] = None
    status: Optional[GroupStatus] = None
    assigned_staff: Optional[str] = None
    notes: Optional[str] = None
    present: Optional[bool] = None
    start_time: Optional[LocalDatetime] = None
    end_time: Optional[LocalDatetime] = None
    activity_duration: Optional[int] = Field(default=None, ge=1)

    def changes(self):
        """Champs réellement envoyés par le client (fusion superficielle)."""
        changes = self.model_dump(exclude_unset=True)
        # Ces champs n'acceptent pas de valeur nulle
        for name in ("members", "status", "present", "activity_duration"):
            if name in changes and changes[name] is None:
                del changes[name]
        return changes


class StaffCreate(_Schema):
    name: str = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("Staff name is required")
        return value


class CallNextRequest(_Schema):
    staff: Optional[str] = None


class SettingUpdate(_Schema):
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def stringify(cls, value):
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return value

"""Domain models persisted by the mentor portal record store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class Role(str, Enum):
    """Portal roles; each view and operation is gated on one or more of these."""

    ADMIN = "admin"
    MENTOR = "mentor"
    STUDENT = "student"


# Unassignment marker written by earlier versions of the portal.
_LEGACY_UNASSIGNED = "removed"


class MeetingStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def validate_rating(rating: Optional[int]) -> None:
    if rating is not None and not 1 <= rating <= 5:
        raise ValueError("Rating must be between 1 and 5")


def _mentor_id_from_record(value: Any) -> Optional[str]:
    mentor_id = _optional_str(value)
    if mentor_id == _LEGACY_UNASSIGNED or mentor_id == "":
        return None
    return mentor_id


@dataclass(frozen=True)
class User:
    """A portal account. Email uniqueness is checked by the callers."""

    id: str
    name: str
    email: str
    role: Role

    def to_record(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role.value}

    @staticmethod
    def from_record(data: Mapping[str, Any]) -> "User":
        return User(
            id=str(data["id"]),
            name=str(data["name"]),
            email=str(data["email"]),
            role=Role(data["role"]),
        )


@dataclass(frozen=True)
class Credential:
    email: str
    password: str

    def to_record(self) -> Dict[str, Any]:
        return {"email": self.email, "password": self.password}

    @staticmethod
    def from_record(data: Mapping[str, Any]) -> "Credential":
        return Credential(email=str(data["email"]), password=str(data["password"]))


@dataclass(frozen=True)
class MentorAssignment:
    """The current mentor of a student.

    ``mentor_id`` is ``None`` when the student has removed their mentor; such a
    record still supersedes any earlier assignment for the same student.
    """

    id: str
    student_id: str
    mentor_id: Optional[str]
    assigned_date: date

    @property
    def is_active(self) -> bool:
        return self.mentor_id is not None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "studentId": self.student_id,
            "mentorId": self.mentor_id,
            "assignedDate": self.assigned_date.isoformat(),
        }

    @staticmethod
    def from_record(data: Mapping[str, Any]) -> "MentorAssignment":
        return MentorAssignment(
            id=str(data["id"]),
            student_id=str(data["studentId"]),
            mentor_id=_mentor_id_from_record(data.get("mentorId")),
            assigned_date=date.fromisoformat(str(data["assignedDate"])),
        )


@dataclass(frozen=True)
class Meeting:
    id: str
    mentor_id: str
    student_id: str
    title: str
    meeting_time: datetime
    agenda: str
    status: MeetingStatus = MeetingStatus.SCHEDULED
    location: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "mentorId": self.mentor_id,
            "studentId": self.student_id,
            "title": self.title,
            "meetingTime": _serialize_datetime(self.meeting_time),
            "agenda": self.agenda,
            "status": self.status.value,
        }
        if self.location is not None:
            record["location"] = self.location
        return record

    @staticmethod
    def from_record(data: Mapping[str, Any]) -> "Meeting":
        return Meeting(
            id=str(data["id"]),
            mentor_id=str(data["mentorId"]),
            student_id=str(data["studentId"]),
            title=str(data["title"]),
            meeting_time=_parse_datetime(data["meetingTime"]),
            agenda=str(data.get("agenda", "")),
            status=MeetingStatus(data.get("status", MeetingStatus.SCHEDULED.value)),
            location=_optional_str(data.get("location")),
        )


@dataclass(frozen=True)
class MeetingLog:
    """Session notes recorded by a mentor after a meeting."""

    id: str
    meeting_id: str
    mentor_id: str
    student_id: str
    topic: str
    notes: str
    action_items: str
    completed: bool
    created_at: datetime
    rating: Optional[int] = None
    feedback: Optional[str] = None
    meeting_title: Optional[str] = None

    def __post_init__(self) -> None:
        validate_rating(self.rating)

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "meetingId": self.meeting_id,
            "meetingTitle": self.meeting_title,
            "mentorId": self.mentor_id,
            "studentId": self.student_id,
            "topic": self.topic,
            "notes": self.notes,
            "actionItems": self.action_items,
            "completed": self.completed,
            "rating": self.rating,
            "feedback": self.feedback,
            "createdAt": _serialize_datetime(self.created_at),
        }

    @staticmethod
    def from_record(data: Mapping[str, Any]) -> "MeetingLog":
        rating = data.get("rating")
        return MeetingLog(
            id=str(data["id"]),
            meeting_id=str(data["meetingId"]),
            mentor_id=str(data["mentorId"]),
            student_id=str(data["studentId"]),
            topic=str(data.get("topic", "")),
            notes=str(data.get("notes", "")),
            action_items=str(data.get("actionItems", "")),
            completed=bool(data.get("completed", False)),
            created_at=_parse_datetime(data["createdAt"]),
            rating=int(rating) if rating is not None else None,
            feedback=_optional_str(data.get("feedback")),
            meeting_title=_optional_str(data.get("meetingTitle")),
        )


@dataclass(frozen=True)
class Notification:
    id: str
    user_id: str
    title: str
    message: str
    seen: bool
    created_at: datetime
    type: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "message": self.message,
            "seen": self.seen,
            "createdAt": _serialize_datetime(self.created_at),
        }
        if self.type is not None:
            record["type"] = self.type
        return record

    @staticmethod
    def from_record(data: Mapping[str, Any]) -> "Notification":
        return Notification(
            id=str(data["id"]),
            user_id=str(data["userId"]),
            title=str(data["title"]),
            message=str(data["message"]),
            seen=bool(data.get("seen", False)),
            created_at=_parse_datetime(data["createdAt"]),
            type=_optional_str(data.get("type")),
        )


__all__ = [
    "Credential",
    "Meeting",
    "MeetingLog",
    "MeetingStatus",
    "MentorAssignment",
    "Notification",
    "Role",
    "User",
]

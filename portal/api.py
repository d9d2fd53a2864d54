"""Mock data-access API over the record store.

Every operation sleeps for a nominal delay before touching the store so callers
experience round-trip latency similar to a remote backend. Store access is
blocking, so it runs in a worker thread and each read-modify-write holds the
instance lock for its whole duration.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, TypeVar

import anyio
import anyio.to_thread

from .models import (
    Credential,
    Meeting,
    MeetingLog,
    MeetingStatus,
    MentorAssignment,
    Notification,
    Role,
    User,
    validate_rating,
)
from .security import hash_password, verify_password
from .store import (
    ASSIGNMENTS,
    CREDENTIALS,
    MEETING_LOGS,
    MEETINGS,
    NOTIFICATIONS,
    USERS,
    RecordStore,
)

logger = logging.getLogger("mentorportal.api")

T = TypeVar("T")
M = TypeVar("M")

LOOKUP_DELAY_MS = 300
LISTING_DELAY_MS = 500
CREATE_DELAY_MS = 700

_RECORD_FACTORIES: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
    USERS: User.from_record,
    CREDENTIALS: Credential.from_record,
    ASSIGNMENTS: MentorAssignment.from_record,
    MEETINGS: Meeting.from_record,
    MEETING_LOGS: MeetingLog.from_record,
    NOTIFICATIONS: Notification.from_record,
}


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    """Uniform result envelope; ``success`` is ``False`` when nothing was found."""

    data: T
    success: bool
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: T, message: Optional[str] = None) -> "ApiResponse[T]":
        return cls(data=data, success=True, message=message)

    @classmethod
    def failure(cls, message: str) -> "ApiResponse[Any]":
        return cls(data=None, success=False, message=message)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalise_email(email: str) -> str:
    return email.strip().lower()


class PortalAPI:
    """Users, mentor assignments, meetings, session notes and notifications."""

    def __init__(self, store: RecordStore, *, latency_scale: float = 1.0) -> None:
        if latency_scale < 0:
            raise ValueError("latency_scale must not be negative")
        self._store = store
        self._latency_scale = latency_scale
        self._lock = threading.RLock()

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def latency_scale(self) -> float:
        return self._latency_scale

    async def _delay(self, nominal_ms: int) -> None:
        seconds = nominal_ms / 1000 * self._latency_scale
        # A zero sleep still yields to the event loop.
        await anyio.sleep(seconds)

    async def _run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run blocking store work in a worker thread, one call at a time."""

        return await anyio.to_thread.run_sync(partial(self._locked, func, *args, **kwargs))

    def _locked(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self._lock:
            return func(*args, **kwargs)

    def _load(self, collection: str, factory: Callable[[Mapping[str, Any]], M]) -> List[M]:
        items: List[M] = []
        for record in self._store.load(collection):
            try:
                items.append(factory(record))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed record in %r: %r", collection, record)
        return items

    def _unreadable(self, collection: str) -> List[Dict[str, Any]]:
        factory = _RECORD_FACTORIES[collection]
        records: List[Dict[str, Any]] = []
        for record in self._store.load(collection):
            try:
                factory(record)
            except (KeyError, TypeError, ValueError):
                records.append(record)
        return records

    def _save(self, collection: str, items: List[Any]) -> None:
        # Records this version cannot parse are written back untouched.
        records = [item.to_record() for item in items]
        records.extend(self._unreadable(collection))
        self._store.save(collection, records)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    async def get_users(self) -> ApiResponse[List[User]]:
        await self._delay(LISTING_DELAY_MS)
        return ApiResponse.ok(await self._run(self._load, USERS, User.from_record))

    async def get_user_by_id(self, user_id: str) -> ApiResponse[Optional[User]]:
        await self._delay(LOOKUP_DELAY_MS)
        for user in await self._run(self._load, USERS, User.from_record):
            if user.id == user_id:
                return ApiResponse.ok(user)
        return ApiResponse.failure("User not found")

    async def get_user_by_email(self, email: str) -> ApiResponse[Optional[User]]:
        await self._delay(LOOKUP_DELAY_MS)
        user = await self._run(self._find_user_by_email, email)
        if user is None:
            return ApiResponse.failure("User not found")
        return ApiResponse.ok(user)

    async def get_users_by_role(self, role: Role) -> ApiResponse[List[User]]:
        await self._delay(LOOKUP_DELAY_MS)
        users = await self._run(self._load, USERS, User.from_record)
        return ApiResponse.ok([user for user in users if user.role == Role(role)])

    async def create_user(
        self,
        name: str,
        email: str,
        role: Role,
        password: Optional[str] = None,
    ) -> ApiResponse[Optional[User]]:
        """Add a user, and a credential when ``password`` is given."""

        await self._delay(CREATE_DELAY_MS)
        normalized_name = name.strip()
        if not normalized_name:
            raise ValueError("Name must not be empty")
        normalized_email = _normalise_email(email)
        if not normalized_email:
            raise ValueError("Email must not be empty")

        password_hash = None
        if password is not None:
            password_hash = await anyio.to_thread.run_sync(hash_password, password)

        user = await self._run(self._insert_user, normalized_name, normalized_email, Role(role), password_hash)
        if user is None:
            return ApiResponse.failure("Email already in use")
        logger.info("Created %s account %s <%s>", user.role.value, user.id, user.email)
        return ApiResponse.ok(user, "User created successfully")

    def _insert_user(
        self,
        name: str,
        email: str,
        role: Role,
        password_hash: Optional[str],
    ) -> Optional[User]:
        if self._find_user_by_email(email) is not None:
            return None

        users = self._load(USERS, User.from_record)
        user = User(id=self._store.next_id(USERS), name=name, email=email, role=role)
        users.append(user)
        self._save(USERS, users)

        if password_hash is not None:
            credentials = [
                credential
                for credential in self._load(CREDENTIALS, Credential.from_record)
                if _normalise_email(credential.email) != email
            ]
            credentials.append(Credential(email=email, password=password_hash))
            self._save(CREDENTIALS, credentials)
        return user

    async def verify_credentials(self, email: str, password: str) -> ApiResponse[Optional[User]]:
        await self._delay(LOOKUP_DELAY_MS)
        user = await self._run(self._find_user_by_email, email)
        if user is None:
            return ApiResponse.failure("Invalid credentials")
        normalized_email = _normalise_email(email)
        for credential in await self._run(self._load, CREDENTIALS, Credential.from_record):
            if _normalise_email(credential.email) != normalized_email:
                continue
            if await anyio.to_thread.run_sync(verify_password, password, credential.password):
                return ApiResponse.ok(user)
            break
        return ApiResponse.failure("Invalid credentials")

    def _find_user_by_email(self, email: str) -> Optional[User]:
        normalized = _normalise_email(email)
        for user in self._load(USERS, User.from_record):
            if _normalise_email(user.email) == normalized:
                return user
        return None

    # ------------------------------------------------------------------
    # Mentor assignments
    # ------------------------------------------------------------------
    async def get_mentor_assignments(self) -> ApiResponse[List[MentorAssignment]]:
        await self._delay(LISTING_DELAY_MS)
        return ApiResponse.ok(await self._run(self._load, ASSIGNMENTS, MentorAssignment.from_record))

    async def get_assignments_for_mentor(self, mentor_id: str) -> ApiResponse[List[MentorAssignment]]:
        await self._delay(LOOKUP_DELAY_MS)
        assignments = await self._run(self._load, ASSIGNMENTS, MentorAssignment.from_record)
        return ApiResponse.ok(
            [assignment for assignment in assignments if assignment.is_active and assignment.mentor_id == mentor_id]
        )

    async def get_assignment_for_student(self, student_id: str) -> ApiResponse[Optional[MentorAssignment]]:
        await self._delay(LOOKUP_DELAY_MS)
        for assignment in await self._run(self._load, ASSIGNMENTS, MentorAssignment.from_record):
            if assignment.student_id == student_id and assignment.is_active:
                return ApiResponse.ok(assignment)
        return ApiResponse.failure("No mentor assigned")

    async def create_mentor_assignment(
        self,
        student_id: str,
        mentor_id: str,
    ) -> ApiResponse[MentorAssignment]:
        """Assign ``mentor_id`` to the student, superseding any earlier assignment."""

        await self._delay(CREATE_DELAY_MS)
        if not mentor_id:
            raise ValueError("mentor_id must not be empty; use remove_mentor_assignment to unassign")
        assignment = await self._run(self._replace_assignment, student_id, mentor_id)
        return ApiResponse.ok(assignment, "Assignment created successfully")

    async def remove_mentor_assignment(self, student_id: str) -> ApiResponse[MentorAssignment]:
        await self._delay(CREATE_DELAY_MS)
        assignment = await self._run(self._replace_assignment, student_id, None)
        return ApiResponse.ok(assignment, "Mentor removed successfully")

    def _replace_assignment(self, student_id: str, mentor_id: Optional[str]) -> MentorAssignment:
        existing = self._load(ASSIGNMENTS, MentorAssignment.from_record)
        remaining = [assignment for assignment in existing if assignment.student_id != student_id]
        assignment = MentorAssignment(
            id=self._store.next_id(ASSIGNMENTS),
            student_id=student_id,
            mentor_id=mentor_id,
            assigned_date=date.today(),
        )
        remaining.append(assignment)
        self._save(ASSIGNMENTS, remaining)
        return assignment

    # ------------------------------------------------------------------
    # Meetings
    # ------------------------------------------------------------------
    async def get_meetings(self) -> ApiResponse[List[Meeting]]:
        await self._delay(LISTING_DELAY_MS)
        return ApiResponse.ok(await self._run(self._load, MEETINGS, Meeting.from_record))

    async def get_meeting_by_id(self, meeting_id: str) -> ApiResponse[Optional[Meeting]]:
        await self._delay(LOOKUP_DELAY_MS)
        meeting = await self._run(self._find_meeting, meeting_id)
        if meeting is None:
            return ApiResponse.failure("Meeting not found")
        return ApiResponse.ok(meeting)

    async def get_meetings_for_mentor(self, mentor_id: str) -> ApiResponse[List[Meeting]]:
        await self._delay(LOOKUP_DELAY_MS)
        meetings = await self._run(self._load, MEETINGS, Meeting.from_record)
        return ApiResponse.ok([m for m in meetings if m.mentor_id == mentor_id])

    async def get_meetings_for_student(self, student_id: str) -> ApiResponse[List[Meeting]]:
        await self._delay(LOOKUP_DELAY_MS)
        meetings = await self._run(self._load, MEETINGS, Meeting.from_record)
        return ApiResponse.ok([m for m in meetings if m.student_id == student_id])

    async def create_meeting(
        self,
        *,
        mentor_id: str,
        student_id: str,
        title: str,
        meeting_time: datetime,
        agenda: str,
        status: MeetingStatus = MeetingStatus.SCHEDULED,
        location: Optional[str] = None,
    ) -> ApiResponse[Meeting]:
        await self._delay(CREATE_DELAY_MS)
        meeting = await self._run(
            self._insert_meeting,
            mentor_id=mentor_id,
            student_id=student_id,
            title=title,
            meeting_time=meeting_time,
            agenda=agenda,
            status=MeetingStatus(status),
            location=location,
        )
        return ApiResponse.ok(meeting, "Meeting created successfully")

    def _insert_meeting(self, **fields: Any) -> Meeting:
        meetings = self._load(MEETINGS, Meeting.from_record)
        meeting = Meeting(id=self._store.next_id(MEETINGS), **fields)
        meetings.append(meeting)
        self._save(MEETINGS, meetings)
        return meeting

    async def update_meeting_status(
        self,
        meeting_id: str,
        status: MeetingStatus,
    ) -> ApiResponse[Optional[Meeting]]:
        """Overwrite the status; any status may move to any other."""

        await self._delay(LISTING_DELAY_MS)
        updated = await self._run(self._set_meeting_status, meeting_id, MeetingStatus(status))
        if updated is None:
            return ApiResponse.failure("Meeting not found")
        return ApiResponse.ok(updated, "Meeting status updated successfully")

    def _set_meeting_status(self, meeting_id: str, status: MeetingStatus) -> Optional[Meeting]:
        meetings = self._load(MEETINGS, Meeting.from_record)
        for index, meeting in enumerate(meetings):
            if meeting.id != meeting_id:
                continue
            updated = replace(meeting, status=status)
            meetings[index] = updated
            self._save(MEETINGS, meetings)
            return updated
        return None

    def _find_meeting(self, meeting_id: str) -> Optional[Meeting]:
        for meeting in self._load(MEETINGS, Meeting.from_record):
            if meeting.id == meeting_id:
                return meeting
        return None

    # ------------------------------------------------------------------
    # Meeting logs
    # ------------------------------------------------------------------
    async def get_meeting_logs(self) -> ApiResponse[List[MeetingLog]]:
        await self._delay(LISTING_DELAY_MS)
        return ApiResponse.ok(await self._run(self._load, MEETING_LOGS, MeetingLog.from_record))

    async def get_meeting_log_by_id(self, log_id: str) -> ApiResponse[Optional[MeetingLog]]:
        await self._delay(LOOKUP_DELAY_MS)
        for log in await self._run(self._load, MEETING_LOGS, MeetingLog.from_record):
            if log.id == log_id:
                return ApiResponse.ok(log)
        return ApiResponse.failure("Meeting log not found")

    async def get_log_for_meeting(self, meeting_id: str) -> ApiResponse[Optional[MeetingLog]]:
        await self._delay(LOOKUP_DELAY_MS)
        for log in await self._run(self._load, MEETING_LOGS, MeetingLog.from_record):
            if log.meeting_id == meeting_id:
                return ApiResponse.ok(log)
        return ApiResponse.failure("No log found for this meeting")

    async def get_logs_for_mentor(self, mentor_id: str) -> ApiResponse[List[MeetingLog]]:
        await self._delay(LOOKUP_DELAY_MS)
        logs = await self._run(self._load, MEETING_LOGS, MeetingLog.from_record)
        return ApiResponse.ok([log for log in logs if log.mentor_id == mentor_id])

    async def get_logs_for_student(self, student_id: str) -> ApiResponse[List[MeetingLog]]:
        await self._delay(LOOKUP_DELAY_MS)
        logs = await self._run(self._load, MEETING_LOGS, MeetingLog.from_record)
        return ApiResponse.ok([log for log in logs if log.student_id == student_id])

    async def create_meeting_log(
        self,
        *,
        meeting_id: str,
        mentor_id: str,
        student_id: str,
        topic: str,
        notes: str,
        action_items: str = "",
        completed: bool = False,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
    ) -> ApiResponse[Optional[MeetingLog]]:
        await self._delay(CREATE_DELAY_MS)
        validate_rating(rating)
        log = await self._run(
            self._insert_meeting_log,
            meeting_id=meeting_id,
            mentor_id=mentor_id,
            student_id=student_id,
            topic=topic,
            notes=notes,
            action_items=action_items,
            completed=completed,
            rating=rating,
            feedback=feedback,
        )
        if log is None:
            return ApiResponse.failure("Meeting not found")
        return ApiResponse.ok(log, "Meeting log created successfully")

    def _insert_meeting_log(self, *, meeting_id: str, **fields: Any) -> Optional[MeetingLog]:
        meeting = self._find_meeting(meeting_id)
        if meeting is None:
            return None
        logs = self._load(MEETING_LOGS, MeetingLog.from_record)
        log = MeetingLog(
            id=self._store.next_id(MEETING_LOGS),
            meeting_id=meeting_id,
            meeting_title=meeting.title,
            created_at=_utcnow(),
            **fields,
        )
        logs.append(log)
        self._save(MEETING_LOGS, logs)
        return log

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    async def get_notifications_for_user(self, user_id: str) -> ApiResponse[List[Notification]]:
        await self._delay(LISTING_DELAY_MS)
        notifications = await self._run(self._load, NOTIFICATIONS, Notification.from_record)
        return ApiResponse.ok([n for n in notifications if n.user_id == user_id])

    async def count_unseen(self, user_id: str) -> ApiResponse[int]:
        await self._delay(LOOKUP_DELAY_MS)
        notifications = await self._run(self._load, NOTIFICATIONS, Notification.from_record)
        return ApiResponse.ok(sum(1 for n in notifications if n.user_id == user_id and not n.seen))

    async def create_notification(
        self,
        *,
        user_id: str,
        title: str,
        message: str,
        type: Optional[str] = None,
    ) -> ApiResponse[Notification]:
        await self._delay(LISTING_DELAY_MS)
        notification = await self._run(
            self._insert_notification,
            user_id=user_id,
            title=title,
            message=message,
            type=type,
        )
        return ApiResponse.ok(notification, "Notification created successfully")

    def _insert_notification(self, **fields: Any) -> Notification:
        notifications = self._load(NOTIFICATIONS, Notification.from_record)
        notification = Notification(
            id=self._store.next_id(NOTIFICATIONS),
            seen=False,
            created_at=_utcnow(),
            **fields,
        )
        notifications.append(notification)
        self._save(NOTIFICATIONS, notifications)
        return notification

    async def mark_notification_seen(self, notification_id: str) -> ApiResponse[Optional[Notification]]:
        await self._delay(LOOKUP_DELAY_MS)
        notification = await self._run(self._set_notification_seen, notification_id)
        if notification is None:
            return ApiResponse.failure("Notification not found")
        return ApiResponse.ok(notification, "Notification marked as seen")

    def _set_notification_seen(self, notification_id: str) -> Optional[Notification]:
        notifications = self._load(NOTIFICATIONS, Notification.from_record)
        for index, notification in enumerate(notifications):
            if notification.id != notification_id:
                continue
            if not notification.seen:
                notification = replace(notification, seen=True)
                notifications[index] = notification
                self._save(NOTIFICATIONS, notifications)
            return notification
        return None


__all__ = ["ApiResponse", "PortalAPI"]

"""Demo records written to an empty store on first run."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .security import hash_password
from .store import (
    ASSIGNMENTS,
    COLLECTIONS,
    CREDENTIALS,
    MEETING_LOGS,
    MEETINGS,
    NOTIFICATIONS,
    USERS,
    RecordStore,
)

logger = logging.getLogger("mentorportal.seed")

DEFAULT_PASSWORD = "password"

DEFAULT_USERS: List[Dict[str, Any]] = [
    {"id": "1", "name": "Admin User", "email": "admin@example.com", "role": "admin"},
    {"id": "2", "name": "Jane Smith", "email": "mentor@example.com", "role": "mentor"},
    {"id": "3", "name": "John Doe", "email": "student@example.com", "role": "student"},
    {"id": "4", "name": "Sarah Johnson", "email": "sarah@example.com", "role": "mentor"},
    {"id": "5", "name": "Michael Brown", "email": "michael@example.com", "role": "student"},
    {"id": "6", "name": "Emily Davis", "email": "emily@example.com", "role": "student"},
    {"id": "7", "name": "Robert Wilson", "email": "robert@example.com", "role": "mentor"},
]

DEFAULT_ASSIGNMENTS: List[Dict[str, Any]] = [
    {"id": "1", "studentId": "3", "mentorId": "2", "assignedDate": "2023-04-15"},
    {"id": "2", "studentId": "5", "mentorId": "2", "assignedDate": "2023-05-20"},
    {"id": "3", "studentId": "6", "mentorId": "4", "assignedDate": "2023-06-10"},
]

DEFAULT_MEETINGS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "mentorId": "2",
        "studentId": "3",
        "title": "Initial Assessment",
        "meetingTime": "2023-06-15T14:00:00+00:00",
        "agenda": "Discuss learning goals and set expectations",
        "status": "completed",
    },
    {
        "id": "2",
        "mentorId": "2",
        "studentId": "3",
        "title": "Progress Review",
        "meetingTime": "2023-07-10T15:30:00+00:00",
        "agenda": "Review progress on learning goals and adjust as needed",
        "status": "completed",
    },
    {
        "id": "3",
        "mentorId": "2",
        "studentId": "3",
        "title": "Project Planning",
        "meetingTime": "2023-08-05T13:00:00+00:00",
        "agenda": "Plan upcoming project and discuss resources needed",
        "status": "scheduled",
    },
    {
        "id": "4",
        "mentorId": "4",
        "studentId": "6",
        "title": "Career Guidance",
        "meetingTime": "2023-07-20T11:00:00+00:00",
        "agenda": "Discuss career opportunities and prepare resume",
        "status": "completed",
    },
    {
        "id": "5",
        "mentorId": "4",
        "studentId": "6",
        "title": "Interview Preparation",
        "meetingTime": "2023-08-12T16:00:00+00:00",
        "agenda": "Mock interview and feedback session",
        "status": "scheduled",
    },
]

DEFAULT_MEETING_LOGS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "meetingId": "1",
        "meetingTitle": "Initial Assessment",
        "mentorId": "2",
        "studentId": "3",
        "topic": "Learning goals",
        "notes": "John shows promise in backend development. Should focus more on database design.",
        "actionItems": "Read up on relational schema design",
        "completed": True,
        "rating": 5,
        "feedback": "The session was very helpful. I now have a clearer idea of what to focus on.",
        "createdAt": "2023-06-15T16:30:00+00:00",
    },
    {
        "id": "2",
        "meetingId": "2",
        "meetingTitle": "Progress Review",
        "mentorId": "2",
        "studentId": "3",
        "topic": "Database skills review",
        "notes": "Good progress on database skills. Next steps: API design patterns.",
        "actionItems": "Sketch the API for the course project",
        "completed": True,
        "rating": 4,
        "feedback": "I appreciate the detailed feedback and resources provided.",
        "createdAt": "2023-07-10T17:15:00+00:00",
    },
    {
        "id": "3",
        "meetingId": "4",
        "meetingTitle": "Career Guidance",
        "mentorId": "4",
        "studentId": "6",
        "topic": "Career planning",
        "notes": "Emily has strong frontend skills. Suggested focusing on React and state management.",
        "actionItems": "Update portfolio",
        "completed": True,
        "rating": 5,
        "feedback": "The career advice was invaluable. I'll work on the suggested portfolio improvements.",
        "createdAt": "2023-07-20T12:45:00+00:00",
    },
]

DEFAULT_NOTIFICATIONS: List[Dict[str, Any]] = [
    {
        "id": "1",
        "userId": "2",
        "title": "New Student Assignment",
        "message": "You have been assigned a new student: John Doe",
        "seen": True,
        "createdAt": "2023-04-15T10:30:00+00:00",
    },
    {
        "id": "2",
        "userId": "3",
        "title": "New Mentor Assignment",
        "message": "You have been assigned to mentor: Jane Smith",
        "seen": True,
        "createdAt": "2023-04-15T10:30:00+00:00",
    },
    {
        "id": "3",
        "userId": "2",
        "title": "Upcoming Meeting",
        "message": "Meeting with John Doe is scheduled for tomorrow at 2 PM",
        "seen": False,
        "createdAt": "2023-06-14T09:00:00+00:00",
    },
    {
        "id": "4",
        "userId": "3",
        "title": "Meeting Notes Added",
        "message": "Your mentor has added notes from your last meeting",
        "seen": False,
        "createdAt": "2023-06-15T17:00:00+00:00",
    },
    {
        "id": "5",
        "userId": "3",
        "title": "Upcoming Meeting Reminder",
        "message": "Upcoming meeting: Progress Review on July 10th at 3:30 PM",
        "seen": False,
        "createdAt": "2023-07-08T11:15:00+00:00",
    },
]


def _seed_flag(collection: str) -> str:
    return f"seeded:{collection}"


def _default_credentials() -> List[Dict[str, Any]]:
    password_hash = hash_password(DEFAULT_PASSWORD)
    return [{"email": user["email"], "password": password_hash} for user in DEFAULT_USERS]


def _defaults_for(collection: str) -> List[Dict[str, Any]]:
    if collection == CREDENTIALS:
        return _default_credentials()
    defaults = {
        USERS: DEFAULT_USERS,
        ASSIGNMENTS: DEFAULT_ASSIGNMENTS,
        MEETINGS: DEFAULT_MEETINGS,
        MEETING_LOGS: DEFAULT_MEETING_LOGS,
        NOTIFICATIONS: DEFAULT_NOTIFICATIONS,
    }
    return [dict(record) for record in defaults[collection]]


def seed_defaults(store: RecordStore) -> List[str]:
    """Seed every collection that has never been seeded; return the ones written.

    A collection is seeded at most once, so records deleted or emptied later
    are not resurrected on the next start.
    """

    seeded: List[str] = []
    for collection in COLLECTIONS:
        if store.load_value(_seed_flag(collection)):
            continue
        if store.get_item(collection) is None:
            store.save(collection, _defaults_for(collection))
            seeded.append(collection)
        store.save_value(_seed_flag(collection), True)

    if seeded:
        logger.info("Seeded default records for %s", ", ".join(seeded))
    return seeded


__all__ = ["DEFAULT_PASSWORD", "DEFAULT_USERS", "seed_defaults"]

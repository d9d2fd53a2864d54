"""JSON HTTP interface for the mentor portal."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from pydantic import BaseModel, Field
from starlette.middleware.sessions import SessionMiddleware

from .access import AccessDecision, ROUTE_ROLES, check_access, redirect_for
from .api import ApiResponse, PortalAPI
from .auth import AuthError, AuthSession, EmailInUseError
from .config import Settings, load_settings
from .models import Meeting, MeetingLog, MeetingStatus, MentorAssignment, Notification, Role, User
from .seed import seed_defaults
from .store import MemoryStore, RecordStore, SQLiteStore

logger = logging.getLogger("mentorportal.service")

SESSION_COOKIE_NAME = "mentorportal_session"


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)
    role: Role


class CreateUserRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    role: Role
    password: Optional[str] = Field(default=None, min_length=1)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: Role


class AssignmentResponse(BaseModel):
    id: str
    student_id: str
    mentor_id: Optional[str]
    assigned_date: date


class MyMentorResponse(BaseModel):
    assignment: Optional[AssignmentResponse] = None
    mentor: Optional[UserResponse] = None


class ChooseMentorRequest(BaseModel):
    mentor_id: str = Field(..., min_length=1)


class MenteeResponse(BaseModel):
    student: UserResponse
    assigned_date: date


class MeetingCreateRequest(BaseModel):
    student_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    meeting_time: datetime
    agenda: str = Field(default="", max_length=2000)
    location: Optional[str] = Field(default=None, max_length=255)


class MeetingStatusRequest(BaseModel):
    status: MeetingStatus


class MeetingResponse(BaseModel):
    id: str
    mentor_id: str
    student_id: str
    title: str
    meeting_time: datetime
    agenda: str
    status: MeetingStatus
    location: Optional[str] = None


class SessionNoteRequest(BaseModel):
    meeting_id: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=3, max_length=200)
    notes: str = Field(..., min_length=1)
    action_items: str = ""
    completed: bool = False


class MeetingLogResponse(BaseModel):
    id: str
    meeting_id: str
    meeting_title: Optional[str] = None
    mentor_id: str
    student_id: str
    topic: str
    notes: str
    action_items: str
    completed: bool
    rating: Optional[int] = None
    feedback: Optional[str] = None
    created_at: datetime


class NotificationCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    seen: bool
    created_at: datetime
    type: Optional[str] = None


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unseen: int


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, name=user.name, email=user.email, role=user.role)


def _assignment_to_response(assignment: MentorAssignment) -> AssignmentResponse:
    return AssignmentResponse(
        id=assignment.id,
        student_id=assignment.student_id,
        mentor_id=assignment.mentor_id,
        assigned_date=assignment.assigned_date,
    )


def _meeting_to_response(meeting: Meeting) -> MeetingResponse:
    return MeetingResponse(
        id=meeting.id,
        mentor_id=meeting.mentor_id,
        student_id=meeting.student_id,
        title=meeting.title,
        meeting_time=meeting.meeting_time,
        agenda=meeting.agenda,
        status=meeting.status,
        location=meeting.location,
    )


def _log_to_response(log: MeetingLog) -> MeetingLogResponse:
    return MeetingLogResponse(
        id=log.id,
        meeting_id=log.meeting_id,
        meeting_title=log.meeting_title,
        mentor_id=log.mentor_id,
        student_id=log.student_id,
        topic=log.topic,
        notes=log.notes,
        action_items=log.action_items,
        completed=log.completed,
        rating=log.rating,
        feedback=log.feedback,
        created_at=log.created_at,
    )


def _notification_to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        user_id=notification.user_id,
        title=notification.title,
        message=notification.message,
        seen=notification.seen,
        created_at=notification.created_at,
        type=notification.type,
    )


def _require_found(result: ApiResponse):
    if not result.success or result.data is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message or "Not found")
    return result.data


def _build_session_dependency(api: PortalAPI) -> Callable[[Request], AuthSession]:
    def dependency(request: Request) -> AuthSession:
        # The signed cookie holds the session record for this browser.
        auth = AuthSession(api, session_store=MemoryStore(request.session))
        auth.restore()
        return auth

    return dependency


def _build_gate(session_dependency: Callable[[Request], AuthSession]):
    def gate(view: str) -> Callable[..., User]:
        allowed_roles = ROUTE_ROLES[view]

        def dependency(auth: AuthSession = Depends(session_dependency)) -> User:
            decision = check_access(auth, allowed_roles)
            if decision is AccessDecision.PERMITTED and auth.user is not None:
                return auth.user
            if decision is AccessDecision.FORBIDDEN:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail={"message": "You do not have access to this page", "redirect": redirect_for(decision)},
                )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"message": "Not authenticated", "redirect": redirect_for(AccessDecision.UNAUTHENTICATED)},
            )

        return dependency

    return gate


def register_routes(app: FastAPI, api: PortalAPI) -> None:
    """Expose the portal operations, each behind the access gate for its view."""

    current_session = _build_session_dependency(api)
    gate = _build_gate(current_session)

    async def _notify(user_id: str, title: str, message: str, *, type: Optional[str] = None) -> None:
        await api.create_notification(user_id=user_id, title=title, message=message, type=type)

    async def _ensure_mentee(mentor: User, student_id: str) -> None:
        result = await api.get_assignment_for_student(student_id)
        if not result.success or result.data is None or result.data.mentor_id != mentor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Student is not assigned to you",
            )

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    @app.post("/auth/login", response_model=UserResponse)
    async def login(payload: LoginRequest, auth: AuthSession = Depends(current_session)) -> UserResponse:
        try:
            user = await auth.login(payload.email, payload.password)
        except AuthError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _user_to_response(user)

    @app.post("/auth/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def register(payload: RegisterRequest, auth: AuthSession = Depends(current_session)) -> UserResponse:
        try:
            user = await auth.register(payload.name, payload.email, payload.password, payload.role)
        except EmailInUseError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        except AuthError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _user_to_response(user)

    @app.post("/auth/logout")
    async def logout(auth: AuthSession = Depends(current_session)) -> Dict[str, str]:
        auth.logout()
        return {"status": "ok"}

    @app.get("/auth/me", response_model=UserResponse)
    async def me(user: User = Depends(gate("dashboard"))) -> UserResponse:
        return _user_to_response(user)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    @app.get("/users", response_model=List[UserResponse])
    async def list_users(user: User = Depends(gate("users"))) -> List[UserResponse]:
        result = await api.get_users()
        return [_user_to_response(item) for item in result.data]

    @app.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def add_user(payload: CreateUserRequest, user: User = Depends(gate("users"))) -> UserResponse:
        try:
            result = await api.create_user(payload.name, payload.email, payload.role, password=payload.password)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        if not result.success or result.data is None:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
        logger.info("Admin %s added user %s", user.id, result.data.id)
        return _user_to_response(result.data)

    @app.get("/mentors", response_model=List[UserResponse])
    async def list_mentors(user: User = Depends(gate("dashboard"))) -> List[UserResponse]:
        result = await api.get_users_by_role(Role.MENTOR)
        return [_user_to_response(item) for item in result.data]

    # ------------------------------------------------------------------
    # Mentor assignments
    # ------------------------------------------------------------------
    @app.get("/assignments", response_model=List[AssignmentResponse])
    async def list_assignments(user: User = Depends(gate("users"))) -> List[AssignmentResponse]:
        result = await api.get_mentor_assignments()
        return [_assignment_to_response(item) for item in result.data]

    @app.get("/my-mentor", response_model=MyMentorResponse)
    async def my_mentor(user: User = Depends(gate("choose-mentor"))) -> MyMentorResponse:
        result = await api.get_assignment_for_student(user.id)
        if not result.success or result.data is None or result.data.mentor_id is None:
            return MyMentorResponse()
        mentor = await api.get_user_by_id(result.data.mentor_id)
        return MyMentorResponse(
            assignment=_assignment_to_response(result.data),
            mentor=_user_to_response(mentor.data) if mentor.data is not None else None,
        )

    @app.put("/my-mentor", response_model=AssignmentResponse)
    async def choose_mentor(
        payload: ChooseMentorRequest,
        user: User = Depends(gate("choose-mentor")),
    ) -> AssignmentResponse:
        mentor = _require_found(await api.get_user_by_id(payload.mentor_id))
        if mentor.role is not Role.MENTOR:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Selected user is not a mentor")

        result = await api.create_mentor_assignment(user.id, mentor.id)
        await _notify(
            mentor.id,
            "New Student Assignment",
            f"You have been assigned a new student: {user.name}",
            type="assignment",
        )
        await _notify(
            user.id,
            "New Mentor Assignment",
            f"You have been assigned to mentor: {mentor.name}",
            type="assignment",
        )
        return _assignment_to_response(result.data)

    @app.delete("/my-mentor", response_model=AssignmentResponse)
    async def remove_mentor(user: User = Depends(gate("choose-mentor"))) -> AssignmentResponse:
        current = await api.get_assignment_for_student(user.id)
        result = await api.remove_mentor_assignment(user.id)
        if current.success and current.data is not None and current.data.mentor_id is not None:
            await _notify(
                current.data.mentor_id,
                "Student Removed",
                f"{user.name} is no longer your mentee",
                type="assignment",
            )
        return _assignment_to_response(result.data)

    @app.get("/mentees", response_model=List[MenteeResponse])
    async def list_mentees(user: User = Depends(gate("mentees"))) -> List[MenteeResponse]:
        assignments = await api.get_assignments_for_mentor(user.id)
        mentees: List[MenteeResponse] = []
        for assignment in assignments.data:
            student = await api.get_user_by_id(assignment.student_id)
            if student.data is None:
                logger.warning("Assignment %s references unknown student %s", assignment.id, assignment.student_id)
                continue
            mentees.append(
                MenteeResponse(student=_user_to_response(student.data), assigned_date=assignment.assigned_date)
            )
        return mentees

    # ------------------------------------------------------------------
    # Meetings
    # ------------------------------------------------------------------
    @app.get("/meetings", response_model=List[MeetingResponse])
    async def list_meetings(user: User = Depends(gate("meetings"))) -> List[MeetingResponse]:
        if user.role is Role.MENTOR:
            result = await api.get_meetings_for_mentor(user.id)
        else:
            result = await api.get_meetings_for_student(user.id)
        return [_meeting_to_response(item) for item in result.data]

    @app.post("/meetings", response_model=MeetingResponse, status_code=status.HTTP_201_CREATED)
    async def create_meeting(
        payload: MeetingCreateRequest,
        user: User = Depends(gate("schedule-meeting")),
    ) -> MeetingResponse:
        await _ensure_mentee(user, payload.student_id)
        result = await api.create_meeting(
            mentor_id=user.id,
            student_id=payload.student_id,
            title=payload.title,
            meeting_time=payload.meeting_time,
            agenda=payload.agenda,
            location=payload.location,
        )
        meeting = result.data
        await _notify(
            meeting.student_id,
            "New Meeting Scheduled",
            f"{user.name} scheduled '{meeting.title}' for {meeting.meeting_time.isoformat()}",
            type="meeting",
        )
        return _meeting_to_response(meeting)

    @app.patch("/meetings/{meeting_id}/status", response_model=MeetingResponse)
    async def update_meeting_status(
        meeting_id: str,
        payload: MeetingStatusRequest,
        user: User = Depends(gate("meetings")),
    ) -> MeetingResponse:
        meeting = _require_found(await api.get_meeting_by_id(meeting_id))
        if user.id not in {meeting.mentor_id, meeting.student_id}:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a participant of this meeting")
        updated = _require_found(await api.update_meeting_status(meeting_id, payload.status))
        return _meeting_to_response(updated)

    # ------------------------------------------------------------------
    # Session notes
    # ------------------------------------------------------------------
    @app.get("/logs", response_model=List[MeetingLogResponse])
    async def list_logs(user: User = Depends(gate("logs"))) -> List[MeetingLogResponse]:
        if user.role is Role.ADMIN:
            result = await api.get_meeting_logs()
        elif user.role is Role.MENTOR:
            result = await api.get_logs_for_mentor(user.id)
        else:
            result = await api.get_logs_for_student(user.id)
        return [_log_to_response(item) for item in result.data]

    @app.post("/session-notes", response_model=MeetingLogResponse, status_code=status.HTTP_201_CREATED)
    async def create_session_notes(
        payload: SessionNoteRequest,
        user: User = Depends(gate("session-notes")),
    ) -> MeetingLogResponse:
        meeting = _require_found(await api.get_meeting_by_id(payload.meeting_id))
        if meeting.mentor_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your meeting")
        log = _require_found(
            await api.create_meeting_log(
                meeting_id=meeting.id,
                mentor_id=user.id,
                student_id=meeting.student_id,
                topic=payload.topic,
                notes=payload.notes,
                action_items=payload.action_items,
                completed=payload.completed,
            )
        )
        await _notify(
            meeting.student_id,
            "Meeting Notes Added",
            "Your mentor has added notes from your last meeting",
            type="session_notes",
        )
        return _log_to_response(log)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    @app.get("/notifications", response_model=NotificationListResponse)
    async def list_notifications(user: User = Depends(gate("notifications"))) -> NotificationListResponse:
        result = await api.get_notifications_for_user(user.id)
        unseen = await api.count_unseen(user.id)
        return NotificationListResponse(
            notifications=[_notification_to_response(item) for item in result.data],
            unseen=unseen.data,
        )

    @app.post("/notifications/{notification_id}/seen", response_model=NotificationResponse)
    async def mark_seen(notification_id: str, user: User = Depends(gate("notifications"))) -> NotificationResponse:
        own = await api.get_notifications_for_user(user.id)
        if not any(item.id == notification_id for item in own.data):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
        notification = _require_found(await api.mark_notification_seen(notification_id))
        return _notification_to_response(notification)

    @app.post("/notifications", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
    async def send_notification(
        payload: NotificationCreateRequest,
        user: User = Depends(gate("send-notification")),
    ) -> NotificationResponse:
        await _ensure_mentee(user, payload.user_id)
        result = await api.create_notification(
            user_id=payload.user_id,
            title=payload.title,
            message=payload.message,
            type="mentor_message",
        )
        return _notification_to_response(result.data)


def create_app(
    *,
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    api: Optional[PortalAPI] = None,
) -> FastAPI:
    """Create the portal application, seeding the store when configured to."""

    if settings is None:
        settings = load_settings()

    if not settings.session_secret:
        raise RuntimeError("PORTAL_SESSION_SECRET must be configured to serve the portal")

    if api is None:
        if store is None:
            sqlite_store = SQLiteStore(settings.database_path)
            sqlite_store.initialize()
            store = sqlite_store
        api = PortalAPI(store, latency_scale=settings.latency_scale)

    if settings.seed_defaults:
        seed_defaults(api.store)

    app = FastAPI(
        title="Mentor Portal",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.api = api
    app.state.settings = settings

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=SESSION_COOKIE_NAME,
        https_only=settings.session_secure,
        same_site="lax",
        max_age=60 * 60 * 24 * 7,
    )

    register_routes(app, api)
    return app


__all__ = ["create_app", "register_routes"]

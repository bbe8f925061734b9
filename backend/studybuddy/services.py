"""Resource services used by HTTP controllers.

Each service validates and sanitizes a request payload, then persists the
result through its repository. Validation always finishes before any
write, so a rejected request never leaves a partial change behind.
Failures are raised as `ServiceError` values; the HTTP layer translates
them into responses.
"""

import logging
from typing import Any, List, Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from . import repositories
from .errors import ErrorKind, ServiceError, validation_error
from .utils.validators import (
    WEEKDAYS,
    is_non_empty_array,
    is_number,
    is_positive_number,
    is_valid_date,
    is_valid_email,
    is_valid_rating,
    parse_date,
    sanitize_string,
)

logger = logging.getLogger("studybuddy.services")

MAX_SESSION_MINUTES = 1440  # one day
MAX_TASK_MINUTES = 10080  # one week


def to_json(doc: dict) -> dict:
    """Return `doc` with its ObjectId rendered as a hex string."""
    out = dict(doc)
    if isinstance(out.get("_id"), ObjectId):
        out["_id"] = str(out["_id"])
    return out


def _bounded_string(value: Any, field: str, min_len: int, max_len: int) -> str:
    if not isinstance(value, str):
        raise validation_error(f"{field} must be a string")
    sanitized = sanitize_string(value)
    if len(sanitized) < min_len or len(sanitized) > max_len:
        raise validation_error(f"{field} must be between {min_len} and {max_len} characters")
    return sanitized


def _course_ref(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise validation_error("courseId must be a non-empty string")
    return sanitize_string(value)


def _rating(value: Any, field: str):
    if not is_valid_rating(value):
        raise validation_error(f"{field} must be an integer between 1 and 5")
    return int(value)


def _optional_text(value: Any, field: str) -> Optional[str]:
    """Sanitize a free-text field; `None` means "leave it out" on create."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise validation_error(f"{field} must be a string")
    return sanitize_string(value)


def _user_ref(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise validation_error("userId must be a string")
    return sanitize_string(value)


def _date(value: Any, field: str) -> str:
    if not is_valid_date(value):
        raise validation_error(f"{field} must be a valid date in YYYY-MM-DD format")
    return value


class ResourceService:
    """Shared list/get/create/update/delete flow for one collection.

    Subclasses provide `_validate(payload, partial)`, which returns the
    sanitized field set. With `partial=False` required fields are
    enforced; with `partial=True` every field is optional and only the
    provided ones come back.
    """
    repository_class = repositories.DocumentRepository
    id_label = "resource"
    not_found_message = "Resource not found"

    def __init__(self, db: Database):
        self.repo = self.repository_class(db)

    def _parse_id(self, raw_id: str) -> ObjectId:
        if not isinstance(raw_id, str) or not ObjectId.is_valid(raw_id):
            raise ServiceError(ErrorKind.INVALID_ID, f"Invalid {self.id_label} ID")
        return ObjectId(raw_id)

    def _not_found(self) -> ServiceError:
        return ServiceError(ErrorKind.NOT_FOUND, self.not_found_message)

    def _validate(self, payload: dict, partial: bool) -> dict:
        raise NotImplementedError

    def list_all(self) -> List[dict]:
        return [to_json(d) for d in self.repo.list()]

    def get_by_id(self, raw_id: str) -> dict:
        oid = self._parse_id(raw_id)
        doc = self.repo.get(oid)
        if doc is None:
            raise self._not_found()
        return to_json(doc)

    def create(self, payload: dict) -> dict:
        fields = self._validate(payload, partial=False)
        fields = {k: v for k, v in fields.items() if v is not None}
        created = self._insert(fields)
        logger.info("created %s %s", self.id_label, created["_id"])
        return to_json(created)

    def update(self, raw_id: str, payload: dict) -> dict:
        oid = self._parse_id(raw_id)
        fields = self._validate(payload, partial=True)
        if not fields:
            raise ServiceError(ErrorKind.EMPTY_UPDATE, "No valid fields to update")
        if not self._apply_update(oid, fields):
            raise self._not_found()
        doc = self.repo.get(oid)
        if doc is None:
            raise self._not_found()
        return to_json(doc)

    def delete(self, raw_id: str) -> None:
        oid = self._parse_id(raw_id)
        if not self.repo.delete(oid):
            raise self._not_found()
        logger.info("deleted %s %s", self.id_label, oid)

    def _insert(self, fields: dict) -> dict:
        return self.repo.insert(fields)

    def _apply_update(self, oid: ObjectId, fields: dict) -> bool:
        return self.repo.update(oid, fields)


class UserService(ResourceService):
    """Users with a unique, case-sensitive email address."""
    repository_class = repositories.UserRepository
    id_label = "user"
    not_found_message = "User not found"
    duplicate_message = "A user with this emailAddress already exists"

    def list_all(self, user_id: Optional[str] = None) -> List[dict]:
        """List users, optionally narrowed to the one with id `user_id`.

        A malformed `user_id` cannot match any user, so it yields an
        empty list rather than an error.
        """
        if not user_id:
            return super().list_all()
        if not ObjectId.is_valid(user_id):
            return []
        return [to_json(d) for d in self.repo.list({"_id": ObjectId(user_id)})]

    def _validate(self, payload: dict, partial: bool) -> dict:
        if not partial and (not payload.get("name") or not payload.get("emailAddress")):
            raise validation_error("name and emailAddress are required")
        fields = {}
        if "name" in payload:
            fields["name"] = _bounded_string(payload["name"], "name", 2, 100)
        if "emailAddress" in payload:
            email = payload["emailAddress"]
            if not isinstance(email, str):
                raise validation_error("emailAddress must be a string")
            email = sanitize_string(email)
            if not is_valid_email(email):
                raise validation_error("emailAddress must be a valid email address")
            fields["emailAddress"] = email
        return fields

    def _duplicate(self) -> ServiceError:
        return ServiceError(ErrorKind.DUPLICATE_EMAIL, self.duplicate_message)

    def _insert(self, fields: dict) -> dict:
        if self.repo.find_by_email(fields["emailAddress"]) is not None:
            raise self._duplicate()
        try:
            return self.repo.insert(fields)
        except DuplicateKeyError:
            raise self._duplicate()

    def _apply_update(self, oid: ObjectId, fields: dict) -> bool:
        if self.repo.get(oid) is None:
            return False
        if "emailAddress" in fields and self.repo.find_by_email(fields["emailAddress"], exclude_id=oid) is not None:
            raise self._duplicate()
        try:
            return self.repo.update(oid, fields)
        except DuplicateKeyError:
            raise self._duplicate()


class CourseService(ResourceService):
    """Courses with a validated date range and weekday schedule."""
    repository_class = repositories.CourseRepository
    id_label = "course"
    not_found_message = "Course not found"

    def _validate(self, payload: dict, partial: bool) -> dict:
        if not partial and not all(payload.get(k) for k in ("courseName", "startDate", "endDate")):
            raise validation_error("courseName, startDate, and endDate are required")
        fields = {}
        if "courseName" in payload:
            fields["courseName"] = _bounded_string(payload["courseName"], "courseName", 2, 200)
        if "startDate" in payload:
            fields["startDate"] = _date(payload["startDate"], "startDate")
        if "endDate" in payload:
            fields["endDate"] = _date(payload["endDate"], "endDate")
        schedule = None
        if "courseSchedule" in payload:
            schedule = payload["courseSchedule"]
            if not is_non_empty_array(schedule):
                raise validation_error("courseSchedule must be a non-empty array")
            fields["courseSchedule"] = list(schedule)
        for key in ("courseDescription", "instructorName", "subject"):
            if key in payload:
                fields[key] = _optional_text(payload[key], key)
        if "userId" in payload:
            fields["userId"] = _user_ref(payload["userId"])

        # date ordering only applies when both ends are in this request
        if "startDate" in fields and "endDate" in fields:
            if parse_date(fields["startDate"]) >= parse_date(fields["endDate"]):
                raise validation_error("endDate must be after startDate")
        if schedule is not None:
            for day in schedule:
                if day not in WEEKDAYS:
                    raise validation_error(f"Invalid day in courseSchedule: {day}")
        return fields


class StudySessionService(ResourceService):
    """Study sessions: a length in minutes bounded to one day."""
    repository_class = repositories.StudySessionRepository
    id_label = "session"
    not_found_message = "Study session not found"

    def _validate(self, payload: dict, partial: bool) -> dict:
        if not partial and (not payload.get("courseId") or payload.get("length") is None):
            raise validation_error("courseId and length are required")
        fields = {}
        if "courseId" in payload:
            fields["courseId"] = _course_ref(payload["courseId"])
        if "length" in payload:
            length = payload["length"]
            if not is_positive_number(length):
                raise validation_error("length must be a positive number (minutes)")
            if length > MAX_SESSION_MINUTES:
                raise validation_error("length cannot exceed 1440 minutes (24 hours)")
            fields["length"] = length
        if "studySessionRating" in payload:
            fields["studySessionRating"] = _rating(payload["studySessionRating"], "studySessionRating")
        if "description" in payload:
            fields["description"] = _optional_text(payload["description"], "description")
        if "userId" in payload:
            fields["userId"] = _user_ref(payload["userId"])
        return fields


class TaskService(ResourceService):
    """Tasks attached to a course, with optional effort tracking."""
    repository_class = repositories.TaskRepository
    id_label = "task"
    not_found_message = "Task not found"

    def list_all(self, user_id: Optional[str] = None) -> List[dict]:
        """List tasks, optionally only those whose `userId` equals `user_id`."""
        flt = {"userId": user_id} if user_id else None
        return [to_json(d) for d in self.repo.list(flt)]

    def list_by_course(self, course_id: str) -> List[dict]:
        """List tasks for `course_id`; the id is an opaque matching key."""
        return [to_json(d) for d in self.repo.list_by_course(course_id)]

    def _validate(self, payload: dict, partial: bool) -> dict:
        if not partial and (not payload.get("courseId") or not payload.get("taskDescription")):
            raise validation_error("courseId and taskDescription are required")
        fields = {}
        if "courseId" in payload:
            fields["courseId"] = _course_ref(payload["courseId"])
        if "taskDescription" in payload:
            fields["taskDescription"] = _bounded_string(payload["taskDescription"], "taskDescription", 3, 500)
        if "taskDifficultyRating" in payload:
            fields["taskDifficultyRating"] = _rating(payload["taskDifficultyRating"], "taskDifficultyRating")
        if "taskTimeEstimate" in payload:
            estimate = payload["taskTimeEstimate"]
            if not is_positive_number(estimate):
                raise validation_error("taskTimeEstimate must be a positive number (minutes)")
            if estimate > MAX_TASK_MINUTES:
                raise validation_error("taskTimeEstimate cannot exceed 10080 minutes (1 week)")
            fields["taskTimeEstimate"] = estimate
        if "taskTimeActual" in payload:
            actual = payload["taskTimeActual"]
            if not is_number(actual) or actual < 0:
                raise validation_error("taskTimeActual must be a non-negative number (minutes)")
            if actual > MAX_TASK_MINUTES:
                raise validation_error("taskTimeActual cannot exceed 10080 minutes (1 week)")
            fields["taskTimeActual"] = actual
        if "userId" in payload:
            fields["userId"] = _user_ref(payload["userId"])
        return fields

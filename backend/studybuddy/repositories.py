"""Repository classes encapsulating MongoDB operations.

Each repository is small and focused on a single collection (users,
courses, study sessions, tasks). Repositories take and return plain
documents keyed by `bson.ObjectId`; they perform no validation.
"""

from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database

from . import database


class DocumentRepository:
    """Find/insert/update/delete-by-id primitives over one collection."""
    collection_name: str = ""

    def __init__(self, db: Database):
        self.collection = db[self.collection_name]

    def list(self, filter: Optional[dict] = None) -> List[dict]:
        """Return every matching document in the store's natural order."""
        return list(self.collection.find(filter or {}))

    def get(self, oid: ObjectId) -> Optional[dict]:
        """Get a document by id, or `None` if it does not exist."""
        return self.collection.find_one({"_id": oid})

    def insert(self, doc: dict) -> dict:
        """Persist `doc` and return a copy carrying the assigned `_id`."""
        new_doc = dict(doc)
        result = self.collection.insert_one(new_doc)
        return {"_id": result.inserted_id, **doc}

    def update(self, oid: ObjectId, fields: dict) -> bool:
        """Overwrite `fields` on the document; False if nothing matched."""
        result = self.collection.update_one({"_id": oid}, {"$set": fields})
        return result.matched_count > 0

    def delete(self, oid: ObjectId) -> bool:
        """Remove the document; False if nothing matched."""
        result = self.collection.delete_one({"_id": oid})
        return result.deleted_count > 0


class UserRepository(DocumentRepository):
    collection_name = database.USERS

    def find_by_email(self, email: str, exclude_id: Optional[ObjectId] = None) -> Optional[dict]:
        """Return the user owning `email`, optionally ignoring `exclude_id`."""
        query = {"emailAddress": email}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return self.collection.find_one(query)


class CourseRepository(DocumentRepository):
    collection_name = database.COURSES


class StudySessionRepository(DocumentRepository):
    collection_name = database.STUDY_SESSIONS


class TaskRepository(DocumentRepository):
    collection_name = database.TASKS

    def list_by_course(self, course_id: str) -> List[dict]:
        """Return all tasks whose `courseId` equals `course_id` exactly."""
        return self.list({"courseId": course_id})

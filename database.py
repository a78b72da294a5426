"""
MongoDB access for CreatorFlow

A single MongoClient is created from DATABASE_URL / DATABASE_NAME. Every
read or write of a user-owned resource goes through the *_owned helpers,
which filter on both the document id and the owner's user_id.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pydantic import BaseModel

from config import settings
from exceptions import ConfigurationException, InvalidIdException
from schemas import utcnow

logger = logging.getLogger(__name__)

client: Optional[MongoClient] = None
db: Optional[Database] = None

if settings.DATABASE_URL and settings.DATABASE_NAME:
    client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = client[settings.DATABASE_NAME]
else:
    logger.warning("DATABASE_URL / DATABASE_NAME not set; data routes will be unavailable")

# collection -> list of (keys, options)
INDEXES: Dict[str, List[Tuple[list, dict]]] = {
    "user": [([("email", ASCENDING)], {"unique": True})],
    "client": [([("user_id", ASCENDING), ("name", ASCENDING)], {})],
    "project": [
        ([("user_id", ASCENDING), ("status", ASCENDING)], {}),
        ([("user_id", ASCENDING), ("client_id", ASCENDING)], {}),
        ([("planned_date", ASCENDING)], {}),
    ],
    "task": [
        ([("user_id", ASCENDING), ("completed", ASCENDING)], {}),
        ([("user_id", ASCENDING), ("priority", ASCENDING)], {}),
        ([("user_id", ASCENDING), ("due_date", ASCENDING)], {}),
        ([("project_id", ASCENDING)], {}),
    ],
    "payment": [
        ([("user_id", ASCENDING), ("paid", ASCENDING)], {}),
        ([("user_id", ASCENDING), ("client_id", ASCENDING)], {}),
        ([("due_date", ASCENDING)], {}),
    ],
    "media": [
        ([("user_id", ASCENDING), ("created_at", DESCENDING)], {}),
        ([("public_id", ASCENDING)], {"unique": True}),
    ],
    "history": [
        ([("user_id", ASCENDING), ("type", ASCENDING), ("created_at", DESCENDING)], {}),
        ([("user_id", ASCENDING), ("created_at", DESCENDING)], {}),
    ],
}

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


def get_db() -> Database:
    if db is None:
        raise ConfigurationException("Database not configured")
    return db


def ensure_indexes() -> None:
    database = get_db()
    for collection_name, indexes in INDEXES.items():
        for keys, options in indexes:
            database[collection_name].create_index(keys, **options)
    logger.info("MongoDB indexes ensured for %d collections", len(INDEXES))


def to_object_id(value: Any, label: str = "resource") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise InvalidIdException(label)


def serialize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Expose _id as a string id; everything else is JSON-encoded by FastAPI."""
    if doc is None:
        return None
    data = dict(doc)
    if "_id" in data:
        data["id"] = str(data.pop("_id"))
    return data


def document_fields(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Stored document minus the fields the helpers manage."""
    return {k: v for k, v in doc.items() if k not in ("_id", "created_at", "updated_at")}


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> Dict[str, Any]:
    """Insert a document, stamping created_at / updated_at. Returns the stored document."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    now = utcnow()
    data_dict["created_at"] = now
    data_dict["updated_at"] = now
    result = get_db()[collection_name].insert_one(data_dict)
    data_dict["_id"] = result.inserted_id
    return data_dict


def get_documents(collection_name: str, filter_dict: Optional[dict] = None,
                  sort: Optional[list] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = get_db()[collection_name].find(filter_dict or {})
    cursor = cursor.sort(sort or NEWEST_FIRST)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def count_documents(collection_name: str, filter_dict: Optional[dict] = None) -> int:
    return get_db()[collection_name].count_documents(filter_dict or {})


def find_owned(collection_name: str, doc_id: Any, user_id: str, label: str = "resource") -> Optional[Dict[str, Any]]:
    return get_db()[collection_name].find_one({"_id": to_object_id(doc_id, label), "user_id": user_id})


def update_owned(collection_name: str, doc_id: Any, user_id: str, fields: Dict[str, Any],
                 label: str = "resource") -> Optional[Dict[str, Any]]:
    changes = dict(fields)
    changes["updated_at"] = utcnow()
    return get_db()[collection_name].find_one_and_update(
        {"_id": to_object_id(doc_id, label), "user_id": user_id},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )


def delete_owned(collection_name: str, doc_id: Any, user_id: str, label: str = "resource") -> Optional[Dict[str, Any]]:
    return get_db()[collection_name].find_one_and_delete(
        {"_id": to_object_id(doc_id, label), "user_id": user_id}
    )

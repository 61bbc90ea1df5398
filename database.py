"""
MongoDB access for the XORA backend.

The connection is configured from the environment:

- DATABASE_URL   mongodb connection string
- DATABASE_NAME  database to use

When either is missing ``db`` stays ``None`` and the API answers 500 on any
route that needs storage.
"""
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import MongoClient

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client: Optional[MongoClient] = None
db = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL)
    db = client[DATABASE_NAME]
    logger.info("Connected to MongoDB database %s", DATABASE_NAME)
else:
    logger.warning("DATABASE_URL / DATABASE_NAME not set, database disabled")


def create_document(collection, data: Dict[str, Any]) -> str:
    """Insert ``data`` with creation/update timestamps and return the new id."""
    now = datetime.now(timezone.utc)
    doc = dict(data)
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    return str(collection.insert_one(doc).inserted_id)


def get_documents(collection, filter_dict: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = collection.find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return [serialize(d) for d in cursor]


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Make a raw document JSON friendly (ObjectIds become strings)."""
    out = {}
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, dict):
            out[key] = serialize(value)
        elif isinstance(value, list):
            out[key] = [serialize(v) if isinstance(v, dict) else (str(v) if isinstance(v, ObjectId) else v) for v in value]
        else:
            out[key] = value
    return out


def dotted(prefix: str, values: Dict[str, Any]) -> Dict[str, Any]:
    """Prefix every key for a ``$set`` on a nested document."""
    return {f"{prefix}.{k}": v for k, v in values.items()}

import logging
import re
from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, Query
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ballotboard import config
from ballotboard.database.connection import get_db, get_now
from ballotboard.models.election_model import Election, ElectionUpdate
from ballotboard.security import get_current_user, require_admin
from ballotboard.status import badge_for, count_by_status, effective_status, parse_timestamp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/elections", tags=["Election"])


def _object_id(election_id: str) -> ObjectId:
    try:
        return ObjectId(election_id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail="Invalid election ID format.")


def _store_error(action: str, exc: Exception) -> HTTPException:
    logger.error(f"Error {action}: {exc}")
    return HTTPException(status_code=500, detail="Internal Server Error")


def _isoformat(value: Any) -> Optional[str]:
    dt = parse_timestamp(value)
    return dt.isoformat() if dt else None


def serialize_election(doc: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    status = effective_status(doc, now)
    badge = badge_for(status)
    return {
        "_id": str(doc["_id"]),
        "title": doc.get("title") or doc.get("name"),
        "description": doc.get("description", ""),
        "startDate": _isoformat(doc.get("startDate")),
        "endDate": _isoformat(doc.get("endDate")),
        "status": status,
        "storedStatus": doc.get("status"),
        "badge": badge._asdict(),
        "positions": doc.get("positions", []),
        "createdAt": _isoformat(doc.get("createdAt")),
    }


def _enum_values(data: Dict[str, Any]) -> Dict[str, Any]:
    if data.get("status") is not None:
        data["status"] = data["status"].value
    return data


@router.get("")
def list_elections(
    search: Optional[str] = Query(None, description="Case-insensitive match on title or description"),
    status: Optional[str] = Query(None, description="Effective status, or 'all'"),
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
    user: dict = Depends(get_current_user),
):
    query: Dict[str, Any] = {}
    if search:
        pattern = re.escape(search.strip())
        query["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]

    try:
        docs = list(db[config.ELECTIONS_COLLECTION_NAME].find(query).sort("createdAt", -1))
        elections = []
        for doc in docs:
            item = serialize_election(doc, now)
            # status filter applies to the effective value, not the stored one
            if status and status != "all" and item["status"] != status:
                continue
            item["candidateCount"] = db[config.CANDIDATES_COLLECTION_NAME].count_documents({"election": doc["_id"]})
            item["voteCount"] = db[config.VOTES_COLLECTION_NAME].count_documents({"election": doc["_id"]})
            elections.append(item)
    except PyMongoError as e:
        raise _store_error("fetching elections", e)

    return {"elections": elections}


@router.get("/stats")
def election_stats(
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
    user: dict = Depends(get_current_user),
):
    try:
        docs = db[config.ELECTIONS_COLLECTION_NAME].find({}, {"status": 1, "startDate": 1, "endDate": 1, "title": 1})
        return count_by_status(docs, now)
    except PyMongoError as e:
        raise _store_error("counting elections", e)


@router.get("/{election_id}")
def get_election(
    election_id: str,
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
    user: dict = Depends(get_current_user),
):
    oid = _object_id(election_id)
    try:
        doc = db[config.ELECTIONS_COLLECTION_NAME].find_one({"_id": oid})
    except PyMongoError as e:
        raise _store_error("fetching election", e)
    if not doc:
        raise HTTPException(status_code=404, detail="Election not found.")
    return serialize_election(doc, now)


@router.get("/{election_id}/candidates")
def get_candidates(
    election_id: str,
    db: Database = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    """Candidates of an election with their vote counts derived from vote records."""
    oid = _object_id(election_id)
    try:
        if not db[config.ELECTIONS_COLLECTION_NAME].find_one({"_id": oid}, {"_id": 1}):
            raise HTTPException(status_code=404, detail="Election not found.")

        candidates = []
        for cand in db[config.CANDIDATES_COLLECTION_NAME].find({"election": oid}):
            votes = db[config.VOTES_COLLECTION_NAME].count_documents({"election": oid, "candidate": cand["_id"]})
            candidates.append({
                "_id": str(cand["_id"]),
                "name": cand.get("name"),
                "position": cand.get("position"),
                "election": election_id,
                "votes": votes,
            })
    except PyMongoError as e:
        raise _store_error("fetching candidates", e)

    return {"candidates": candidates}


@router.post("", status_code=201)
def create_election(
    election: Election,
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: dict = Depends(require_admin),
):
    data = _enum_values(election.model_dump())
    data["createdAt"] = now
    data["createdBy"] = admin["id"]
    try:
        result = db[config.ELECTIONS_COLLECTION_NAME].insert_one(data)
    except PyMongoError as e:
        raise _store_error("creating election", e)

    logger.info(f"Election created: {data['title']} ({result.inserted_id})")
    data["_id"] = result.inserted_id
    return {"message": "Election created successfully!", "election": serialize_election(data, now)}


@router.put("/{election_id}")
def update_election(
    election_id: str,
    changes: ElectionUpdate,
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
    admin: dict = Depends(require_admin),
):
    oid = _object_id(election_id)
    update = _enum_values(changes.model_dump(exclude_unset=True))
    # dates sent as null clear the window
    cleared = [key for key in ("startDate", "endDate") if key in update and update[key] is None]
    for key in cleared:
        del update[key]
    if not update and not cleared:
        raise HTTPException(status_code=400, detail="No fields to update.")

    coll = db[config.ELECTIONS_COLLECTION_NAME]
    try:
        current = coll.find_one({"_id": oid})
        if not current:
            raise HTTPException(status_code=404, detail="Election not found.")

        merged = {**current, **update}
        start = None if "startDate" in cleared else parse_timestamp(merged.get("startDate"))
        end = None if "endDate" in cleared else parse_timestamp(merged.get("endDate"))
        if start and end and end < start:
            raise HTTPException(status_code=422, detail="endDate must not be before startDate")

        operations: Dict[str, Any] = {}
        if update:
            operations["$set"] = update
        if cleared:
            operations["$unset"] = {key: "" for key in cleared}

        updated = coll.find_one_and_update(
            {"_id": oid},
            operations,
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        raise _store_error("updating election", e)

    if not updated:
        raise HTTPException(status_code=404, detail="Election not found.")
    logger.info(f"Election {election_id} updated by {admin['id']}: {sorted(update) + cleared}")
    return {"message": "Election updated successfully!", "election": serialize_election(updated, now)}


@router.delete("/{election_id}")
def delete_election(
    election_id: str,
    db: Database = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    oid = _object_id(election_id)
    try:
        result = db[config.ELECTIONS_COLLECTION_NAME].delete_one({"_id": oid})
    except PyMongoError as e:
        raise _store_error("deleting election", e)

    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Election not found.")
    logger.info(f"Election {election_id} deleted by {admin['id']}")
    return {"message": "Election deleted successfully!"}

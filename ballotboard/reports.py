import csv
import io
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from pymongo.database import Database

from ballotboard import config
from ballotboard.status import effective_status, parse_timestamp

logger = logging.getLogger(__name__)

CSV_HEADER = ["Election Name", "Status", "Start Date", "End Date", "Votes", "Turnout (%)"]


def _percent(part: int, whole: int) -> int:
    if not whole:
        return 0
    # half rounds up, as the dashboard always displayed it
    return int(math.floor(part / whole * 100 + 0.5))


def election_turnout(votes: int, total_users: int) -> int:
    return _percent(votes, total_users)


def voter_turnout(voted: int, total_users: int) -> int:
    return _percent(voted, total_users)


def _isoformat(value: Any) -> Optional[str]:
    dt = parse_timestamp(value)
    return dt.isoformat() if dt else None


def build_summary(
    total_elections: int,
    total_votes: int,
    total_users: int,
    elections: List[Dict[str, Any]],
    votes_per_election: Mapping[str, int],
    distinct_voters: int,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Assemble the report summary from raw store counts.

    ``votes_per_election`` is keyed by the string form of election ``_id``;
    elections absent from it are reported with zero votes.
    """
    rows = []
    for election in elections:
        votes = votes_per_election.get(str(election.get("_id")), 0)
        rows.append({
            "_id": str(election.get("_id")),
            "name": election.get("name") or election.get("title"),
            "status": effective_status(election, now),
            "storedStatus": election.get("status"),
            "startDate": _isoformat(election.get("startDate")),
            "endDate": _isoformat(election.get("endDate")),
            "createdAt": _isoformat(election.get("createdAt")),
            "votes": votes,
            "turnout": election_turnout(votes, total_users),
        })

    return {
        "totalElections": total_elections,
        "totalVotes": total_votes,
        "totalUsers": total_users,
        "voterTurnout": voter_turnout(distinct_voters, total_users),
        "voted": distinct_voters,
        "notVoted": total_users - distinct_voters,
        "elections": rows,
    }


def fetch_summary(db: Database, now: Optional[datetime] = None) -> Dict[str, Any]:
    elections_coll = db[config.ELECTIONS_COLLECTION_NAME]
    votes_coll = db[config.VOTES_COLLECTION_NAME]
    users_coll = db[config.USERS_COLLECTION_NAME]

    total_elections = elections_coll.count_documents({})
    total_votes = votes_coll.count_documents({})
    total_users = users_coll.count_documents({})
    elections = list(elections_coll.find())

    votes_per_election = {
        str(e["_id"]): votes_coll.count_documents({"election": e["_id"]})
        for e in elections
    }
    voted = votes_coll.distinct("user")

    logger.info(
        f"Report summary computed: {total_elections} elections, "
        f"{total_votes} votes, {total_users} users"
    )
    return build_summary(
        total_elections,
        total_votes,
        total_users,
        elections,
        votes_per_election,
        len(voted),
        now,
    )


def summary_to_csv(summary: Dict[str, Any]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADER)
    for row in summary.get("elections", []):
        writer.writerow([
            row.get("name") or "",
            row.get("status") or "",
            (row.get("startDate") or "")[:10],
            (row.get("endDate") or "")[:10],
            row.get("votes", 0),
            row.get("turnout", 0),
        ])
    return buf.getvalue()

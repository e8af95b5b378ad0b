"""
Domain enums for proposals, versions and admin action logs.

These enums are stored as plain strings so the same schema works on
PostgreSQL and SQLite.
"""

from enum import Enum


class ProposalState(str, Enum):
    """Answer state of a proposal. A proposal without answer has no state."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EVALUATING = "evaluating"
    WITHDRAWN = "withdrawn"


class InternalAnswerState(str, Enum):
    """States an administrator can pick when answering a proposal."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EVALUATING = "evaluating"


class VersionEvent(str, Enum):
    """Event recorded on a version row."""

    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"


class ActionLogVisibility(str, Enum):
    """
    Who may see an admin action log entry.

    admin-only entries only show in the admin log, public-only entries only
    in the public timeline, "all" in both.
    """

    ADMIN_ONLY = "admin-only"
    ALL = "all"
    PUBLIC_ONLY = "public-only"
    PRIVATE_ONLY = "private-only"


class ProposalAction(str, Enum):
    """Actions recorded in the admin action log for proposals."""

    CREATE = "create"
    UPDATE = "update"
    ANSWER = "answer"
    PUBLISH_ANSWER = "publish_answer"


class SortColumn(str, Enum):
    """Sortable columns of the admin proposal index."""

    ID = "id"
    TITLE = "title"
    CREATED_AT = "created_at"
    PROPOSAL_VOTES_COUNT = "proposal_votes_count"

"""
Ownership is the only access axis: no roles, no admin override.

Read access depends on the path. The public feed and the single-post view
are open to everyone; the private listing is owner-only. Modify and delete
always require the requester to be the author.
"""
import enum
from typing import Optional, Protocol


class Operation(str, enum.Enum):
    READ_PUBLIC = "read_public"
    READ_PRIVATE = "read_private"
    MODIFY = "modify"
    DELETE = "delete"


class Authored(Protocol):
    author_id: Optional[str]


def is_owner(requester_id: Optional[str], post: Authored) -> bool:
    return requester_id is not None and requester_id == post.author_id


def can_access(requester_id: Optional[str], post: Authored, operation: Operation) -> bool:
    if operation is Operation.READ_PUBLIC:
        return True
    return is_owner(requester_id, post)

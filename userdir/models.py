"""Data models for the application."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Form/record field names, in display order
RECORD_FIELDS = ("first_name", "last_name", "email", "avatar")


@dataclass(frozen=True)
class Credential:
    """Model for the persisted session credential."""

    token: str
    expires_at: int  # epoch milliseconds

    def is_valid(self, now_ms: int) -> bool:
        return bool(self.token) and self.expires_at > now_ms


@dataclass(frozen=True)
class Record:
    """Model for one user record of the directory."""

    id: int
    first_name: str
    last_name: str
    email: str
    avatar: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Record":
        return cls(
            id=int(data["id"]),
            first_name=str(data.get("first_name") or ""),
            last_name=str(data.get("last_name") or ""),
            email=str(data.get("email") or ""),
            avatar=str(data.get("avatar") or ""),
        )

    def form_fields(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in RECORD_FIELDS}


@dataclass
class PageResult:
    """Model for one page returned by the list endpoint."""

    records: List[Record]
    current_page: int
    total_pages: int


@dataclass
class PageState:
    """Model for the list controller's page state."""

    current_page: int = 1
    total_pages: int = 1
    records: List[Record] = field(default_factory=list)
    search_term: str = ""


class MutationKind(Enum):
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class Mutation:
    """A confirmed update or delete to be reconciled into the current page."""

    kind: MutationKind
    record_id: int
    record: Optional[Record] = None

    @classmethod
    def updated(cls, record: Record) -> "Mutation":
        return cls(MutationKind.UPDATED, record.id, record)

    @classmethod
    def deleted(cls, record_id: int) -> "Mutation":
        return cls(MutationKind.DELETED, record_id)

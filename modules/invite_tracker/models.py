import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Guild id. Invite codes are unique within one guild.
CommunityId = int

# code -> last observed uses
Snapshot = dict[str, int]


class InviteRecord(BaseModel):
    """One row of a live invite listing. Only (code, uses) survives into a snapshot."""
    model_config = ConfigDict(frozen=True)

    code: str
    uses: int = Field(default=0, ge=0)
    max_uses: Optional[int] = None
    expires_at: Optional[datetime.datetime] = None
    inviter_id: Optional[int] = None


# --- Attribution results ---

class UnattributedReason(str, Enum):
    NO_INCREMENT = "no_increment"
    FETCH_FAILED = "fetch_failed"


class Attributed(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    previous_uses: int
    new_uses: int
    # How many codes incremented since the last snapshot
    candidates: int = 1

    @property
    def delta(self) -> int:
        return self.new_uses - self.previous_uses


class AttributedByFallback(BaseModel):
    model_config = ConfigDict(frozen=True)

    vanity_code: str


class Unattributed(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: UnattributedReason = UnattributedReason.NO_INCREMENT
    detail: Optional[str] = None

    @property
    def fetch_failed(self) -> bool:
        return self.reason is UnattributedReason.FETCH_FAILED


AttributionResult = Union[Attributed, AttributedByFallback, Unattributed]


# --- Ingest events ---

class CommunityObserved(BaseModel):
    """First sight of a guild. Without an invite list the tracker fetches one itself."""
    community: CommunityId
    invites: Optional[list[InviteRecord]] = None


class CommunityLeft(BaseModel):
    community: CommunityId


class InviteAdded(BaseModel):
    community: CommunityId
    code: str
    uses: int = Field(default=0, ge=0)


class InviteRemoved(BaseModel):
    community: CommunityId
    code: str


class MemberJoined(BaseModel):
    community: CommunityId
    member_id: int


IngestEvent = Union[CommunityObserved, CommunityLeft, InviteAdded, InviteRemoved, MemberJoined]

"""Cross-tenant identity resolution data model."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ReplyCode(str, Enum):
    """Reply code of the identity resolution service for a single address."""

    ACCEPT = "accept"
    NEUTRAL = "neutral"
    DENY = "deny"


class ResolvedIdentity(BaseModel):
    """Resolution outcome for one external contact address."""

    address: str
    reply_code: ReplyCode = ReplyCode.NEUTRAL
    tenant_id: Optional[int] = None
    user_id: Optional[int] = None

    model_config = {"frozen": True}

    @property
    def usable(self) -> bool:
        """Only accepted replies with positive tenant and user ids are usable."""
        return (
            self.reply_code == ReplyCode.ACCEPT
            and self.tenant_id is not None
            and self.tenant_id > 0
            and self.user_id is not None
            and self.user_id > 0
        )

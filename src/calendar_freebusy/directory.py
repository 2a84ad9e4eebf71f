"""Static tenant directory: user settings, permission facts and identity resolution."""

import logging
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from .freebusy.visibility import FreeBusyVisibility
from .models.event import Event
from .models.identity import ReplyCode, ResolvedIdentity

logger = logging.getLogger(__name__)


class UserSettings(BaseModel):
    """Settings and permissions of a single user within a tenant."""

    email: Optional[str] = None
    timezone: Optional[str] = None
    free_busy_visibility: FreeBusyVisibility = FreeBusyVisibility.ALL
    visible_folders: list[str] = Field(default_factory=list)
    delegate_for: list[int] = Field(default_factory=list)  # bookable resource entities


class TenantSettings(BaseModel):
    """Users and events of a tenant."""

    cross_tenant_free_busy: bool = True
    users: dict[int, UserSettings] = Field(default_factory=dict)
    events: list[Event] = Field(default_factory=list)


class StaticPermissionFacts:
    """Permission facts of a tenant as seen by one viewer, read from tenant settings."""

    def __init__(
        self,
        tenant: TenantSettings,
        viewer_id: Optional[int] = None,
        default_timezone: str = "UTC",
    ):
        """
        Initialize permission facts.

        Args:
            tenant: Settings of the tenant
            viewer_id: The acting user (None for lookups from other tenants)
            default_timezone: Timezone of users without configured one
        """
        self.tenant = tenant
        self.viewer_id = viewer_id
        self.default_timezone = default_timezone
        self.cross_tenant_free_busy = tenant.cross_tenant_free_busy

    def _user(self, entity: Optional[int]) -> UserSettings:
        return self.tenant.users.get(entity) or UserSettings()

    def get_free_busy_visibility(self, entity: int) -> FreeBusyVisibility:
        return self._user(entity).free_busy_visibility

    def choose_folder_id(self, event: Event) -> Optional[str]:
        """Prefer the event's own folder, then the viewer's, then any visible attendee folder."""
        if event.folder_id and self.is_folder_visible(event.folder_id):
            return event.folder_id
        for attendee in event.attendees:
            if attendee.matches(self.viewer_id) and attendee.folder_id:
                return attendee.folder_id
        for attendee in event.attendees:
            if attendee.folder_id and self.is_folder_visible(attendee.folder_id):
                return attendee.folder_id
        return None

    def is_folder_visible(self, folder_id: str) -> bool:
        return folder_id in self._user(self.viewer_id).visible_folders

    def has_booking_delegate_privilege(self, user_id: int, resource_entity: int) -> bool:
        return resource_entity in self._user(user_id).delegate_for

    def get_timezone(self, entity: int) -> str:
        return self._user(entity).timezone or self.default_timezone


class StaticIdentityService:
    """Identity resolution over the users' e-mail addresses of all tenants."""

    def __init__(self, tenants: dict[int, TenantSettings]):
        self.directory: dict[str, tuple[int, int]] = {}
        for tenant_id, tenant in tenants.items():
            for user_id, user in tenant.users.items():
                if user.email:
                    self.directory[user.email.lower()] = (tenant_id, user_id)

    def resolve_batch(self, addresses: Sequence[str]) -> list[ResolvedIdentity]:
        resolutions = []
        for address in addresses:
            entry = self.directory.get(address.lower())
            if entry is None:
                resolutions.append(ResolvedIdentity(address=address, reply_code=ReplyCode.NEUTRAL))
            else:
                resolutions.append(
                    ResolvedIdentity(
                        address=address,
                        reply_code=ReplyCode.ACCEPT,
                        tenant_id=entry[0],
                        user_id=entry[1],
                    )
                )
        logger.debug(f"Resolved {len(resolutions)} address(es) from static directory")
        return resolutions

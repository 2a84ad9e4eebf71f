"""Resolution of external contact addresses to participants in other tenants."""

import logging
from typing import Optional, Protocol, Sequence

from ..models.identity import ResolvedIdentity
from ..models.participant import CalendarUserType, Participant
from ..utils.exceptions import ProtocolMismatchError

logger = logging.getLogger(__name__)


class IdentityResolutionService(Protocol):
    """Protocol for services mapping contact addresses to tenant users."""

    def resolve_batch(self, addresses: Sequence[str]) -> Optional[Sequence[ResolvedIdentity]]:
        """
        Resolve a batch of contact addresses.

        Args:
            addresses: Contact addresses to resolve

        Returns:
            One resolution per address, in request order, or None
        """
        ...


class IdentityResolver:
    """Batch-resolves external participants to internal users of other tenants."""

    def __init__(self, service: Optional[IdentityResolutionService] = None):
        """
        Initialize identity resolver.

        Args:
            service: Identity resolution service (None if not available)
        """
        self.service = service

    def resolve(
        self, address_to_participant: dict[str, Participant]
    ) -> dict[int, dict[Participant, Participant]]:
        """
        Resolve external participants to users in their home tenants.

        Args:
            address_to_participant: External participants by contact address

        Returns:
            Per tenant id, the resolved participants mapped to the original ones

        Raises:
            ProtocolMismatchError: If the service answers with a different number of results
        """
        if self.service is None or not address_to_participant:
            return {}

        addresses = list(address_to_participant.keys())
        logger.debug(f"Resolving {len(addresses)} address(es) across tenants")
        resolutions = self.service.resolve_batch(addresses)
        if resolutions is None:
            return {}
        if len(resolutions) != len(addresses):
            raise ProtocolMismatchError(
                f"Identity resolution returned {len(resolutions)} result(s) for {len(addresses)} address(es)",
                expected=len(addresses),
                actual=len(resolutions),
            )

        participants_per_tenant: dict[int, dict[Participant, Participant]] = {}
        for address, resolution in zip(addresses, resolutions):
            if not resolution.usable:
                logger.debug(f"Skipping unresolvable address {address} ({resolution.reply_code.value})")
                continue
            original = address_to_participant[address]
            resolved = original.model_copy(
                update={"entity": resolution.user_id, "cu_type": CalendarUserType.INDIVIDUAL}
            )
            participants_per_tenant.setdefault(resolution.tenant_id, {})[resolved] = original

        return participants_per_tenant

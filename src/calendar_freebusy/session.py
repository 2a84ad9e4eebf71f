"""Viewer context and diagnostics sink for free/busy evaluation."""

import logging
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class Diagnostics:
    """Collects non-fatal warnings raised while evaluating a request."""

    warnings: list[Exception] = field(default_factory=list)

    def add_warning(self, warning: Exception) -> None:
        logger.debug(f"Recorded warning: {warning}")
        self.warnings.append(warning)


@dataclass
class ViewerContext:
    """The acting user of a free/busy or recurrence lookup."""

    user_id: int
    tenant_id: int
    timezone: str = "UTC"
    mask_uid: Optional[str] = None  # UID of an event to hide provisionally
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def add_warning(self, warning: Exception) -> None:
        self.diagnostics.add_warning(warning)

    @property
    def warnings(self) -> list[Exception]:
        return self.diagnostics.warnings

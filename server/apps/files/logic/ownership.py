"""Ownership checks for mutating file operations."""

import logging
from dataclasses import dataclass
from typing import final

from server.apps.files.exceptions import OwnershipError
from server.apps.files.models import File

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True, slots=True)
class OwnershipDecision:
    """Result of comparing a record's owner with the caller.

    Callers get the record back only through ``enforce``, so a denied
    decision cannot be ignored on the way to a mutation.
    """

    record: File
    caller_id: str
    allowed: bool

    def enforce(self) -> File:
        """Return the record if the caller owns it.

        Returns:
            The authorized File instance.

        Raises:
            OwnershipError: If the caller is not the owner.
        """
        if not self.allowed:
            raise OwnershipError(self.record.storage_key, self.caller_id)
        return self.record


def authorize(record: File, caller_id: str) -> OwnershipDecision:
    """Decide whether ``caller_id`` may act on ``record``.

    Args:
        record: File record being accessed.
        caller_id: Identity subject of the caller.

    Returns:
        OwnershipDecision to be enforced before any mutation.
    """
    allowed = bool(caller_id) and record.owner_id == caller_id
    if not allowed:
        logger.warning(
            'User %s does not own file %s',
            caller_id,
            record.storage_key,
        )
    return OwnershipDecision(record=record, caller_id=caller_id, allowed=allowed)

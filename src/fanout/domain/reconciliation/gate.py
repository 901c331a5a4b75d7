"""Decide whether children may be mutated in this pass."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fanout.domain.model import Phase

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fanout.domain.model import ChildResource

log = logging.getLogger(__name__)


def find_blocking_child(children: Iterable[ChildResource]) -> ChildResource | None:
    """Return the first child that is being deleted or still progressing."""

    for child in children:
        if child.metadata.pending_deletion:
            log.debug("Not eligible for update due to deletion of child %s", child.reference)
            return child
        if child.status.phase == Phase.PROGRESSING:
            log.debug("Not eligible for update due to running child %s", child.reference)
            return child
    return None

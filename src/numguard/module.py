from __future__ import annotations

import logging
from typing import Sequence

from contracts.document import Document
from contracts.numguard import NumGuardAlert

from .checks import DEFAULT_CHECKS, Check, build_context
from .config import NumGuardConfig

logger = logging.getLogger(__name__)


class NumGuard:
    """
    Runs numeric consistency checks over an encoded Document.

    Read-only with respect to the document: findings are returned as alerts
    and never alter cells or payloads. Checks run in the order given and the
    combined result is sorted by (first page, first cell, issue, message).
    """

    def __init__(self, config: NumGuardConfig | None = None, checks: Sequence[Check] = DEFAULT_CHECKS) -> None:
        self.config = config or NumGuardConfig()
        self.checks = tuple(checks)

    def run(self, document: Document) -> list[NumGuardAlert]:
        if not self.config.enabled or not document.cells:
            return []

        ctx = build_context(document, self.config)
        alerts: list[NumGuardAlert] = []
        for check in self.checks:
            found = check(ctx)
            if found:
                logger.debug("numguard %s: %d alert(s)", getattr(check, "__name__", "check"), len(found))
            alerts.extend(found)

        alerts.sort(key=lambda a: a.sort_key())
        return alerts


def run_numguard(document: Document, config: NumGuardConfig | None = None) -> list[NumGuardAlert]:
    return NumGuard(config).run(document)

# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Sequential bulk sending through the generic send route.

Each recipient gets its own request, issued one after the other with a fixed
pause in between. A failure for one address, including a 429 from the
gateway's limiter or a network error, is recorded against that address and
the loop moves on.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

import requests

from .client import EmailDraft, GatewayClient
from .logger import get_logger
from .validation import is_valid_email

DEFAULT_DELAY = 0.5
SEPARATORS = re.compile(r"[\n,]+")

logger = get_logger("BulkSender")


def parse_recipients(text: str) -> List[str]:
    """Split free text into unique, syntactically valid addresses.

    Entries are separated by newlines or commas. First-seen order is kept.
    """
    seen: List[str] = []
    for entry in SEPARATORS.split(text or ""):
        address = entry.strip()
        if address and is_valid_email(address) and address not in seen:
            seen.append(address)
    return seen


@dataclass
class RecipientOutcome:
    email: str
    success: bool
    message: str


@dataclass
class BulkReport:
    total: int = 0
    sent: int = 0
    failed: int = 0
    outcomes: List[RecipientOutcome] = field(default_factory=list)

    @property
    def all_sent(self) -> bool:
        return self.failed == 0

    def summary(self) -> str:
        return f"Sent: {self.sent}, Failed: {self.failed}"


ProgressCallback = Callable[[int, int, RecipientOutcome], None]


class BulkSender:
    """Send one draft to many recipients, one request at a time.

    Args:
        client: Gateway client used for every request.
        delay: Seconds to wait after each send.
        sleep: Pause function, replaceable in tests.
        on_progress: Called after each recipient with
            ``(done, total, outcome)``.
    """

    def __init__(
        self,
        client: GatewayClient,
        delay: float = DEFAULT_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.client = client
        self.delay = delay
        self.sleep = sleep
        self.on_progress = on_progress

    def _send_one(self, address: str, draft: EmailDraft) -> RecipientOutcome:
        try:
            response = self.client.send_email(draft.for_recipient(address))
        except requests.RequestException as exc:
            logger.warning("Bulk send to %s failed: %s", address, exc)
            return RecipientOutcome(address, False, str(exc))
        if response.ok:
            return RecipientOutcome(address, True, "Sent successfully")
        return RecipientOutcome(address, False, response.error)

    def run(self, recipients: Iterable[str], draft: EmailDraft) -> BulkReport:
        addresses = list(recipients)
        report = BulkReport(total=len(addresses))
        for index, address in enumerate(addresses, start=1):
            outcome = self._send_one(address, draft)
            report.outcomes.append(outcome)
            if outcome.success:
                report.sent += 1
            else:
                report.failed += 1
            if self.on_progress:
                self.on_progress(index, report.total, outcome)
            if self.delay > 0:
                self.sleep(self.delay)
        logger.info("Bulk send finished: %s", report.summary())
        return report

"""
ledger.py  —  Tamper-evident record of every dosage recommendation
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

There is no chain behind this: SimulatedLedger stands in for a contract call
on a public test network. It sleeps like one, fails like one (about one call
in ten) and hands back transaction hashes shaped like real ones, so the rest
of the service can be written against the same interface a real client
would expose.

  record_dosage()  → LedgerReceipt       (status callbacks while it runs)
  verify_dosage()  → LedgerVerification
"""

import asyncio
import hashlib
import logging
import random
import threading
from typing import Callable, Dict, Optional

from .config import (
    DEFAULT_NETWORK,
    LEDGER_CONFIRM_DELAY,
    LEDGER_FAILURE_RATE,
    LEDGER_NETWORKS,
    LEDGER_SUBMIT_DELAY,
    LEDGER_VERIFY_DELAY,
)
from .schemas import LedgerReceipt, LedgerVerification

logger = logging.getLogger(__name__)

STATUS_SUBMITTING = "Submitting transaction..."
STATUS_SUBMITTED = "Transaction submitted. Waiting for confirmation..."
STATUS_CONFIRMED = "Transaction confirmed!"
STATUS_FAILED = "Transaction failed!"

StatusCallback = Callable[[str], None]


def generate_prediction_hash(patient_id: str, drug_name: str, dosage: float,
                             timestamp: int) -> str:
    """Content hash of one recommendation. Same inputs → same hash."""
    payload = f"{patient_id}:{drug_name}:{dosage}:{timestamp}"
    return "0x" + hashlib.sha3_256(payload.encode("utf-8")).hexdigest()


class SimulatedLedger:
    """In-memory stand-in for the on-chain dosage registry."""

    def __init__(self, rng: Optional[random.Random] = None,
                 failure_rate: float = LEDGER_FAILURE_RATE,
                 submit_delay: float = LEDGER_SUBMIT_DELAY,
                 confirm_delay: float = LEDGER_CONFIRM_DELAY,
                 verify_delay: float = LEDGER_VERIFY_DELAY,
                 network: str = DEFAULT_NETWORK):
        if network not in LEDGER_NETWORKS:
            raise ValueError(f"Unknown network '{network}'. "
                             f"Choose from: {', '.join(LEDGER_NETWORKS)}")
        self.rng = rng or random.Random()
        self.failure_rate = failure_rate
        self.submit_delay = submit_delay
        self.confirm_delay = confirm_delay
        self.verify_delay = verify_delay
        self.network = network
        self.recorder = self._hex(40)
        self._records: Dict[str, LedgerVerification] = {}
        self._lock = threading.Lock()

    @property
    def network_info(self) -> dict:
        return LEDGER_NETWORKS[self.network]

    def explorer_url(self, tx_hash: str) -> str:
        return f"{self.network_info['block_explorer']}/tx/{tx_hash}"

    def _hex(self, digits: int) -> str:
        return "0x" + "".join(self.rng.choice("0123456789abcdef") for _ in range(digits))

    def _fails(self) -> bool:
        return self.rng.random() < self.failure_rate

    @staticmethod
    def _notify(on_status: Optional[StatusCallback], message: str):
        if on_status is not None:
            on_status(message)

    async def record_dosage(self, prediction_hash: str, drug_name: str, dosage: float,
                            timestamp: int,
                            on_status: Optional[StatusCallback] = None) -> LedgerReceipt:
        self._notify(on_status, STATUS_SUBMITTING)
        await asyncio.sleep(self.submit_delay)

        tx_hash = self._hex(64)
        self._notify(on_status, STATUS_SUBMITTED)
        await asyncio.sleep(self.confirm_delay)

        if self._fails():
            self._notify(on_status, STATUS_FAILED)
            logger.warning("Ledger rejected %s (%s %.1f mg)", prediction_hash, drug_name, dosage)
            return LedgerReceipt(success=False, error="Transaction reverted")

        with self._lock:
            self._records[prediction_hash] = LedgerVerification(
                exists=True,
                drug_name=drug_name,
                dosage=dosage,
                timestamp=timestamp,
                recorder=self.recorder,
            )
        self._notify(on_status, STATUS_CONFIRMED)
        logger.info("Recorded %s on %s  →  %s", prediction_hash, self.network, tx_hash)
        return LedgerReceipt(success=True, transaction_hash=tx_hash)

    async def verify_dosage(self, prediction_hash: str) -> LedgerVerification:
        await asyncio.sleep(self.verify_delay)
        if self._fails():
            return LedgerVerification(exists=False, error="Record not found")
        with self._lock:
            record = self._records.get(prediction_hash)
        if record is None:
            return LedgerVerification(exists=False, error="Record not found")
        return record

    def __len__(self):
        return len(self._records)

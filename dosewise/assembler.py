"""
assembler.py  —  Patient record in, recommendation out
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

Dosage flow (strictly in this order, each step feeds the next):
  1. pick a predictor   → learned model if one can be loaded / trained,
                          rule-based otherwise (confidence 0.7)
  2. predict the dose
  3. alternatives       → fixed swap table, same weight × age scaling
  4. content hash       → generate_prediction_hash(...)
  5. ledger submit      → completed / failed / pending (timeout)
  6. history            → newest first

Diagnosis flow: the checklist scorer, or the learned classifier on request.

Model and ledger problems never fail a request. A valid patient record
always gets a result; `status`, `confidence` and `source` say how degraded
it is. Only InputValidationError reaches the caller.
"""

import asyncio
import logging
import random
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Union

from .config import (
    ALTERNATIVE_BASE_DOSAGES,
    ALTERNATIVE_DRUGS,
    AUTO_TRAIN,
    LEDGER_TIMEOUT,
    N_ESTIMATORS,
)
from .errors import ExternalServiceError, InputValidationError, ModelUnavailableError
from .ledger import SimulatedLedger, StatusCallback, generate_prediction_hash
from .model import ModelStore, predict_disease
from .predictors import ModelRegistry
from .schemas import (
    AlternativeMedication,
    DiagnosisResult,
    LedgerVerification,
    PatientProfile,
    PredictionResult,
    PredictionStatus,
    parse_patient,
)
from .scoring import age_factor, round_to_step, score_diagnosis, weight_factor

logger = logging.getLogger(__name__)

PatientInput = Union[PatientProfile, Mapping[str, Any]]

ZERO_DOSE_WARNING = "Dose rounds to 0 mg for this patient; review manually"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return f"pred-{uuid.uuid4().hex[:12]}"


class PredictionHistory:
    """Append-only list of dosage results, newest first. Safe across threads."""

    def __init__(self):
        self._items: List[PredictionResult] = []
        self._lock = threading.Lock()

    def add(self, result: PredictionResult):
        with self._lock:
            self._items.insert(0, result)

    def get(self, prediction_id: str) -> Optional[PredictionResult]:
        with self._lock:
            return next((r for r in self._items if r.id == prediction_id), None)

    def all(self) -> List[PredictionResult]:
        with self._lock:
            return list(self._items)

    def for_patient(self, patient_id: str) -> List[PredictionResult]:
        return [r for r in self.all() if r.patient_id == patient_id]

    def __len__(self):
        with self._lock:
            return len(self._items)


class RecommendationAssembler:

    def __init__(self, registry: ModelRegistry, ledger: SimulatedLedger,
                 history: Optional[PredictionHistory] = None,
                 clock: Callable[[], int] = _now_ms,
                 ledger_timeout: float = LEDGER_TIMEOUT,
                 id_factory: Callable[[], str] = _new_id):
        self.registry = registry
        self.ledger = ledger
        self.history = history if history is not None else PredictionHistory()
        self.clock = clock
        self.ledger_timeout = ledger_timeout
        self.id_factory = id_factory

    # ── dosage ───────────────────────────────────────────────────
    def alternatives(self, patient: PatientProfile, drug_name: str) -> List[AlternativeMedication]:
        scale = weight_factor(patient) * age_factor(patient)
        return [
            AlternativeMedication(name=alt, dosage=round_to_step(ALTERNATIVE_BASE_DOSAGES[alt] * scale))
            for alt in ALTERNATIVE_DRUGS.get(drug_name, [])
        ]

    async def _submit(self, prediction_hash: str, drug: str, dosage: float, timestamp: int,
                      on_status: Optional[StatusCallback]):
        """(status, tx handle, message) for one ledger submission."""
        try:
            receipt = await asyncio.wait_for(
                self.ledger.record_dosage(prediction_hash, drug, dosage, timestamp,
                                          on_status=on_status),
                timeout=self.ledger_timeout,
            )
        except asyncio.TimeoutError:
            handle = f"local-{prediction_hash[2:18]}"
            logger.warning("Ledger timed out after %.1fs; using %s", self.ledger_timeout, handle)
            return PredictionStatus.PENDING, handle, "Ledger did not answer in time"
        except Exception as e:
            error = ExternalServiceError(f"Ledger call failed: {e}")
            logger.error("%s", error, exc_info=True)
            return PredictionStatus.FAILED, None, str(error)

        if receipt.success:
            return PredictionStatus.COMPLETED, receipt.transaction_hash, None
        return PredictionStatus.FAILED, None, receipt.error or "Ledger rejected the record"

    async def assemble_dosage(self, patient: PatientInput, drug_name: str,
                              on_status: Optional[StatusCallback] = None) -> PredictionResult:
        patient = parse_patient(patient)
        if not isinstance(drug_name, str) or not drug_name.strip():
            raise InputValidationError("A drug name is required")
        drug = drug_name.strip().lower()

        predictor = await self.registry.predictor_for(drug)
        try:
            prediction = predictor.predict(patient, drug)
        except Exception:
            if predictor is self.registry.fallback:
                raise
            logger.error("Learned %s model failed; using rule-based dosage", drug, exc_info=True)
            prediction = self.registry.fallback.predict(patient, drug)

        warnings = []
        if prediction.dosage <= 0:
            warnings.append(ZERO_DOSE_WARNING)
        timestamp = self.clock()
        prediction_hash = generate_prediction_hash(patient.id, drug, prediction.dosage, timestamp)
        status, tx_hash, message = await self._submit(
            prediction_hash, drug, prediction.dosage, timestamp, on_status)

        result = PredictionResult(
            id=self.id_factory(),
            patient_id=patient.id,
            drug_name=drug,
            recommended_dosage=prediction.dosage,
            confidence=prediction.confidence,
            alternative_medications=self.alternatives(patient, drug),
            blockchain_hash=prediction_hash,
            blockchain_tx_hash=tx_hash,
            timestamp=timestamp,
            status=status,
            source=prediction.source,
            ledger_message=message,
            warnings=warnings,
        )
        self.history.add(result)
        logger.info("%s %s → %.0f mg (%s, confidence %.2f, %s)", patient.id, drug,
                    result.recommended_dosage, result.source, result.confidence, status.value)
        return result

    # ── diagnosis ────────────────────────────────────────────────
    async def assemble_diagnosis(self, patient: PatientInput,
                                 use_model: bool = False) -> DiagnosisResult:
        patient = parse_patient(patient)
        if use_model:
            try:
                model = await self.registry.get_disease_model()
                return predict_disease(model, patient)
            except ModelUnavailableError as e:
                logger.warning("Disease model unavailable, using checklist scorer: %s", e)
        return score_diagnosis(patient)

    # ── one entry point for both flows ───────────────────────────
    async def assemble(self, patient: PatientInput, context: Optional[str] = None,
                       on_status: Optional[StatusCallback] = None):
        """Drug name → PredictionResult; None → DiagnosisResult."""
        patient = parse_patient(patient)
        if context is None:
            return await self.assemble_diagnosis(patient)
        return await self.assemble_dosage(patient, context, on_status=on_status)

    async def verify(self, prediction_hash: str) -> LedgerVerification:
        try:
            return await asyncio.wait_for(self.ledger.verify_dosage(prediction_hash),
                                          timeout=self.ledger_timeout)
        except asyncio.TimeoutError:
            return LedgerVerification(exists=False, error="Ledger did not answer in time")
        except Exception as e:
            logger.error("Ledger verify failed for %s", prediction_hash, exc_info=True)
            return LedgerVerification(exists=False, error=str(ExternalServiceError(str(e))))


def build_service(model_dir: Optional[Path] = None,
                  auto_train: bool = AUTO_TRAIN,
                  n_estimators: int = N_ESTIMATORS,
                  ledger: Optional[SimulatedLedger] = None,
                  rng: Optional[random.Random] = None,
                  ledger_timeout: float = LEDGER_TIMEOUT,
                  **registry_kwargs) -> RecommendationAssembler:
    """Wire store, registry, ledger and history into one assembler."""
    registry = ModelRegistry(
        store=ModelStore(model_dir),
        auto_train=auto_train,
        n_estimators=n_estimators,
        **registry_kwargs,
    )
    return RecommendationAssembler(
        registry=registry,
        ledger=ledger if ledger is not None else SimulatedLedger(rng=rng),
        history=PredictionHistory(),
        ledger_timeout=ledger_timeout,
    )

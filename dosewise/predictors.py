"""
predictors.py  —  Where a dose comes from
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

One interface, two implementations:
  RuleBasedPredictor  → scoring.score_dosage, fixed conservative confidence
  LearnedPredictor    → a trained per-drug regressor

ModelRegistry owns the process-wide model cache and picks whichever
predictor is available. Model loading / training runs in a worker thread and
is awaited; at most one load-or-train job is in flight per model key.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from .config import (
    AUTO_TRAIN,
    DISEASE_TRAINING_COUNT,
    FALLBACK_CONFIDENCE,
    N_ESTIMATORS,
    RANDOM_SEED,
    SYNTHETIC_PATIENT_COUNT,
)
from .errors import ModelUnavailableError, NoTrainingDataError
from .model import (
    DISEASE_KEY,
    DiseaseModel,
    DosageModel,
    DosagePrediction,
    ModelStore,
    dosage_key,
    predict_dosage,
    train_disease_model,
    train_dosage_model,
)
from .schemas import PatientProfile
from .scoring import score_dosage
from .synthetic import DRUGS, SyntheticDataset, generate_dataset, generate_patients

logger = logging.getLogger(__name__)


class DosagePredictor(Protocol):
    source: str

    def predict(self, patient: PatientProfile, drug_name: str) -> DosagePrediction:
        ...


class RuleBasedPredictor:
    source = "rule-based"

    def __init__(self, confidence: float = FALLBACK_CONFIDENCE):
        self.confidence = confidence

    def predict(self, patient: PatientProfile, drug_name: str) -> DosagePrediction:
        return DosagePrediction(score_dosage(patient, drug_name), self.confidence, self.source)


class LearnedPredictor:
    source = "learned"

    def __init__(self, model: DosageModel):
        self.model = model

    def predict(self, patient: PatientProfile, drug_name: str) -> DosagePrediction:
        return predict_dosage(self.model, patient, drug_name)


def _default_dataset() -> SyntheticDataset:
    return generate_dataset(SYNTHETIC_PATIENT_COUNT, seed=RANDOM_SEED)


def _default_disease_patients() -> List[PatientProfile]:
    return generate_patients(DISEASE_TRAINING_COUNT, seed=RANDOM_SEED)


class ModelRegistry:
    """
    Cache of trained models keyed by store key (dosage-<drug> / disease).

    Lookup order for a key: in-memory cache → ModelStore → fresh training
    (only when auto_train is on), after which the model is saved.
    """

    def __init__(self, store: Optional[ModelStore] = None,
                 dataset_factory: Optional[Callable[[], SyntheticDataset]] = None,
                 disease_patients_factory: Optional[Callable[[], Sequence[PatientProfile]]] = None,
                 auto_train: bool = AUTO_TRAIN,
                 n_estimators: int = N_ESTIMATORS,
                 executor: Optional[ThreadPoolExecutor] = None,
                 fallback_confidence: float = FALLBACK_CONFIDENCE):
        self.store = store or ModelStore()
        self.auto_train = auto_train
        self.n_estimators = n_estimators
        self.fallback = RuleBasedPredictor(fallback_confidence)
        self._dataset_factory = dataset_factory or _default_dataset
        self._disease_patients_factory = disease_patients_factory or _default_disease_patients
        self._executor = executor or ThreadPoolExecutor(max_workers=2,
                                                        thread_name_prefix="dosewise-train")
        self._models: Dict[str, object] = {}
        self._pending: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._data_lock = threading.Lock()
        self._dataset: Optional[SyntheticDataset] = None
        self.training_runs: Dict[str, int] = {}

    # ── training data (generated once, read-only afterwards) ─────
    @property
    def dataset(self) -> SyntheticDataset:
        with self._data_lock:
            if self._dataset is None:
                self._dataset = self._dataset_factory()
            return self._dataset

    def supported_drugs(self) -> List[str]:
        return list(DRUGS)

    def cached(self, key: str):
        return self._models.get(key)

    # ── load-or-train, one job per key ───────────────────────────
    def _load_or_train(self, key: str, build: Callable[[], object]):
        try:
            model = self.store.load(key)
            if model is None:
                if not self.auto_train:
                    raise ModelUnavailableError(f"No saved model '{key}' and auto-training is off")
                logger.info("No saved model for %s. Training new model...", key)
                with self._lock:
                    self.training_runs[key] = self.training_runs.get(key, 0) + 1
                try:
                    model = build()
                except (NoTrainingDataError, ModelUnavailableError):
                    raise
                except Exception as e:
                    raise ModelUnavailableError(f"Training '{key}' failed: {e}") from e
                try:
                    self.store.save(model, key)
                except OSError:
                    logger.warning("Could not save model %s; keeping it in memory", key,
                                   exc_info=True)
            with self._lock:
                self._models[key] = model
            return model
        finally:
            with self._lock:
                self._pending.pop(key, None)

    def _submit(self, key: str, build: Callable[[], object]) -> Future:
        with self._lock:
            model = self._models.get(key)
            if model is not None:
                # a job finished between the unlocked cache check and here
                done = Future()
                done.set_result(model)
                return done
            future = self._pending.get(key)
            if future is None:
                future = self._executor.submit(self._load_or_train, key, build)
                self._pending[key] = future
            return future

    async def _obtain(self, key: str, build: Callable[[], object]):
        model = self._models.get(key)
        if model is not None:
            return model
        return await asyncio.wrap_future(self._submit(key, build))

    # ── dosage ───────────────────────────────────────────────────
    def _build_dosage(self, drug: str) -> DosageModel:
        return train_dosage_model(drug, self.dataset, n_estimators=self.n_estimators)

    async def get_dosage_model(self, drug_name: str) -> DosageModel:
        drug = drug_name.strip().lower()
        return await self._obtain(dosage_key(drug), lambda: self._build_dosage(drug))

    async def predictor_for(self, drug_name: str) -> DosagePredictor:
        """Learned predictor when a model can be had, rule-based otherwise."""
        try:
            return LearnedPredictor(await self.get_dosage_model(drug_name))
        except (NoTrainingDataError, ModelUnavailableError) as e:
            logger.warning("Falling back to rule-based dosage for %s: %s", drug_name, e)
            return self.fallback

    # ── disease ──────────────────────────────────────────────────
    def _build_disease(self) -> DiseaseModel:
        return train_disease_model(list(self._disease_patients_factory()),
                                   n_estimators=self.n_estimators)

    async def get_disease_model(self) -> DiseaseModel:
        return await self._obtain(DISEASE_KEY, self._build_disease)

    # ── maintenance ──────────────────────────────────────────────
    def train_all(self, drugs: Optional[Sequence[str]] = None, disease: bool = True) -> Dict[str, dict]:
        """Retrain and save every model now (blocking). Returns their metadata."""
        summary = {}
        for drug in drugs or self.supported_drugs():
            key = dosage_key(drug)
            model = self._build_dosage(drug.strip().lower())
            self.store.save(model, key)
            with self._lock:
                self._models[key] = model
            summary[key] = model.describe()
        if disease:
            model = self._build_disease()
            self.store.save(model, DISEASE_KEY)
            with self._lock:
                self._models[DISEASE_KEY] = model
            summary[DISEASE_KEY] = model.describe()
        return summary

    def reset(self):
        with self._lock:
            self._models.clear()

    def close(self):
        self._executor.shutdown(wait=False)

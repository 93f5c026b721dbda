"""
model.py  —  ML brain for DoseWise
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

What the learned models are (and are not):
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
  The training labels come from the rule engine in scoring.py applied to
  synthetic patients. The models therefore learn to IMITATE the rules, not
  clinical ground truth.

  Dosage    → one random-forest regressor per drug, trained on
              (encode(patient, drug), dose / 1000). Output × 1000,
              rounded to the nearest 5 mg.
              Confidence = agreement with the rule-engine dose:
                  max(0, 1 - |predicted - reference| / reference)

  Diagnosis → one random-forest classifier over the checklist winner.
              Confidence = class probability of the winner.

Persistence is a joblib bundle per model + a JSON metadata file, keyed by
drug name or a single disease key.
"""

import json
import logging
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence

import joblib
import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.metrics import accuracy_score, mean_absolute_error, r2_score
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import LabelEncoder

from . import catalog
from .config import (
    MAX_DEPTH,
    MIN_HOLDOUT_ROWS,
    MIN_SAMPLES_LEAF,
    MODEL_DIR,
    N_ESTIMATORS,
    RANDOM_STATE,
    TEST_SIZE,
)
from .errors import NoTrainingDataError
from .features import encode_frame, feature_schema
from .schemas import DiagnosisResult, PatientProfile, RelatedDisease
from .scoring import (
    MAX_PROBABILITY,
    MAX_RELATED,
    RELATED_THRESHOLD,
    build_diagnosis,
    round_to_step,
    score_disease,
    score_dosage,
)
from .synthetic import SyntheticDataset

logger = logging.getLogger(__name__)

DOSAGE_SCALE = 1000
DISEASE_KEY = "disease"


def dosage_key(drug_name: str) -> str:
    return f"dosage-{drug_name.strip().lower()}"


@dataclass
class DosageModel:
    drug_name: str
    estimator: RandomForestRegressor
    feature_cols: List[str]
    metrics: Dict[str, float] = field(default_factory=dict)
    trained_at: float = field(default_factory=time.time)

    def describe(self) -> dict:
        return {
            "kind":         "dosage",
            "drug":         self.drug_name,
            "feature_cols": self.feature_cols,
            "metrics":      self.metrics,
            "trained_at":   self.trained_at,
            "note": "Regressor imitates the rule-engine dose; confidence = agreement with it.",
        }


@dataclass
class DiseaseModel:
    estimator: RandomForestClassifier
    le_disease: LabelEncoder
    feature_cols: List[str]
    metrics: Dict[str, float] = field(default_factory=dict)
    trained_at: float = field(default_factory=time.time)

    def describe(self) -> dict:
        return {
            "kind":         "disease",
            "diseases":     list(self.le_disease.classes_),
            "feature_cols": self.feature_cols,
            "metrics":      self.metrics,
            "trained_at":   self.trained_at,
            "note": "Classifier imitates the symptom-checklist scorer.",
        }


class DosagePrediction(NamedTuple):
    dosage: float
    confidence: float
    source: str = "learned"


def _split(X, y, stratify=False):
    """Hold-out split, or None when there are too few rows to bother."""
    if len(X) < MIN_HOLDOUT_ROWS:
        return None
    strat = None
    if stratify:
        counts = pd.Series(y).value_counts()
        n_test = math.ceil(len(X) * TEST_SIZE)
        if counts.min() >= 2 and n_test >= len(counts):
            strat = y
    return train_test_split(X, y, test_size=TEST_SIZE, stratify=strat,
                            random_state=RANDOM_STATE)


# ─────────────────────────────────────────────────────────────────
# TRAIN — dosage
# ─────────────────────────────────────────────────────────────────
def train_dosage_model(drug_name: str, dataset: SyntheticDataset,
                       n_estimators: int = N_ESTIMATORS) -> DosageModel:
    drug = drug_name.strip().lower()
    pairs = dataset.training_pairs(drug)
    if not pairs:
        raise NoTrainingDataError(drug)

    cols = feature_schema(drug)
    X = encode_frame([p for p, _ in pairs], drug)
    y = np.array([r.optimal_dosage / DOSAGE_SCALE for _, r in pairs])

    def make():
        return RandomForestRegressor(
            n_estimators=n_estimators,
            max_depth=MAX_DEPTH,
            min_samples_leaf=MIN_SAMPLES_LEAF,
            n_jobs=-1,
            random_state=RANDOM_STATE,
        )

    metrics = {"rows": float(len(pairs))}
    split = _split(X, y)
    if split is not None:
        X_tr, X_te, y_tr, y_te = split
        probe = make().fit(X_tr, y_tr)
        pred = probe.predict(X_te)
        metrics["mae_mg"] = round(float(mean_absolute_error(y_te, pred)) * DOSAGE_SCALE, 2)
        metrics["r2"] = round(float(r2_score(y_te, pred)), 4) if len(y_te) > 1 else float("nan")

    estimator = make().fit(X, y)
    logger.info("Trained dosage model for %s on %d rows %s", drug, len(pairs), metrics)
    return DosageModel(drug_name=drug, estimator=estimator, feature_cols=cols, metrics=metrics)


def dosage_confidence(predicted: float, reference: float) -> float:
    if reference <= 0:
        return 1.0 if predicted == reference else 0.0
    confidence = max(0.0, 1 - abs(predicted - reference) / reference)
    return round(min(1.0, confidence), 2)


def predict_dosage(model: DosageModel, patient: PatientProfile,
                   drug_name: Optional[str] = None) -> DosagePrediction:
    drug = (drug_name or model.drug_name).strip().lower()
    X = encode_frame([patient], drug)[model.feature_cols]
    raw = float(model.estimator.predict(X)[0]) * DOSAGE_SCALE
    dosage = round_to_step(raw)
    reference = score_dosage(patient, drug)
    return DosagePrediction(dosage, dosage_confidence(dosage, reference), "learned")


# ─────────────────────────────────────────────────────────────────
# TRAIN — disease
# ─────────────────────────────────────────────────────────────────
def train_disease_model(patients: Sequence[PatientProfile],
                        n_estimators: int = N_ESTIMATORS) -> DiseaseModel:
    if not patients:
        raise ValueError("Cannot train the disease model without patients")

    cols = feature_schema(None)
    X = encode_frame(patients, None)
    labels = [score_disease(p).disease for p in patients]

    le_disease = LabelEncoder()
    y = le_disease.fit_transform(labels)

    def make():
        return RandomForestClassifier(
            n_estimators=n_estimators,
            max_depth=MAX_DEPTH,
            min_samples_leaf=MIN_SAMPLES_LEAF,
            class_weight="balanced",
            n_jobs=-1,
            random_state=RANDOM_STATE,
        )

    metrics = {"rows": float(len(patients)), "classes": float(len(le_disease.classes_))}
    split = _split(X, y, stratify=True)
    if split is not None:
        X_tr, X_te, y_tr, y_te = split
        probe = make().fit(X_tr, y_tr)
        metrics["accuracy"] = round(float(accuracy_score(y_te, probe.predict(X_te))), 4)

    estimator = make().fit(X, y)
    logger.info("Trained disease model on %d patients %s", len(patients), metrics)
    return DiseaseModel(estimator=estimator, le_disease=le_disease,
                        feature_cols=cols, metrics=metrics)


def disease_probabilities(model: DiseaseModel, patient: PatientProfile) -> Dict[str, float]:
    """Class probability per catalog disease (0 for classes never seen in training)."""
    X = encode_frame([patient], None)[model.feature_cols]
    proba = model.estimator.predict_proba(X)[0]
    names = model.le_disease.inverse_transform(model.estimator.classes_)
    by_name = {name: float(p) for name, p in zip(names, proba)}
    return {d: by_name.get(d, 0.0) for d in catalog.DISEASES}


def predict_disease(model: DiseaseModel, patient: PatientProfile) -> DiagnosisResult:
    probs = disease_probabilities(model, patient)

    winner, best = catalog.BASELINE_DISEASE, -1.0
    for disease, p in probs.items():
        if p > best:
            winner, best = disease, p

    related = [
        RelatedDisease(name=d, probability=round(p, 4))
        for d, p in probs.items()
        if d != winner and p > RELATED_THRESHOLD
    ]
    related.sort(key=lambda r: r.probability, reverse=True)

    probability = round(min(MAX_PROBABILITY, best), 4)
    return build_diagnosis(winner, probability, related[:MAX_RELATED], patient)


# ─────────────────────────────────────────────────────────────────
# PERSISTENCE
# ─────────────────────────────────────────────────────────────────
class ModelStore:
    """joblib bundle + JSON metadata per key, in one folder."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory or MODEL_DIR)

    def model_path(self, key: str) -> Path:
        return self.directory / f"{key}.joblib"

    def meta_path(self, key: str) -> Path:
        return self.directory / f"{key}.meta.json"

    def exists(self, key: str) -> bool:
        return self.model_path(key).exists()

    def save(self, model, key: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.model_path(key)
        joblib.dump(model, path)
        with open(self.meta_path(key), "w") as f:
            json.dump(model.describe(), f, indent=2, default=str)
        logger.info("Model saved  →  %s", path)
        return path

    def load(self, key: str):
        """The saved model, or None when it is missing, unreadable or stale."""
        path = self.model_path(key)
        if not path.exists():
            return None
        try:
            model = joblib.load(path)
        except Exception:
            logger.warning("Could not load model %s; it will be retrained", path, exc_info=True)
            return None
        if not isinstance(model, (DosageModel, DiseaseModel)):
            logger.warning("Ignoring %s: unexpected object %r", path, type(model).__name__)
            return None
        context = model.drug_name if isinstance(model, DosageModel) else None
        if list(model.feature_cols) != feature_schema(context):
            logger.warning("Ignoring %s: saved with a different feature schema; it will be "
                           "retrained", path)
            return None
        logger.info("Model loaded ←  %s", path)
        return model

    def delete(self, key: str):
        for path in (self.model_path(key), self.meta_path(key)):
            if path.exists():
                path.unlink()


# ── Run to train: python -m dosewise.model ───────────────────────
if __name__ == "__main__":
    from .config import RANDOM_SEED, SYNTHETIC_PATIENT_COUNT
    from .synthetic import DRUGS, generate_dataset

    print("=" * 55)
    print("  DoseWise — Training random forests")
    print("=" * 55 + "\n")

    data = generate_dataset(SYNTHETIC_PATIENT_COUNT, seed=RANDOM_SEED)
    store = ModelStore()
    for drug in DRUGS:
        m = train_dosage_model(drug, data)
        store.save(m, dosage_key(drug))
        print(f"   {drug:14s} MAE {m.metrics.get('mae_mg', float('nan')):6.1f} mg   "
              f"R² {m.metrics.get('r2', float('nan')):.3f}")

    disease = train_disease_model(list(data.patients))
    store.save(disease, DISEASE_KEY)
    print(f"\n   Disease classifier accuracy: {disease.metrics.get('accuracy', 0) * 100:.1f}%")

    print("─" * 55)
    print("DEMO — predict_dosage() results:")
    print("─" * 55)
    for patient in data.patients[:5]:
        for drug in ("ibuprofen", "metformin"):
            p = predict_dosage(store.load(dosage_key(drug)), patient, drug)
            print(f"  {patient.id} {drug:10s} {patient.weight:5.1f}kg {patient.age:3d}yr → "
                  f"{p.dosage:6.1f} mg  (rules {score_dosage(patient, drug):6.1f}, "
                  f"confidence {p.confidence:.2f})")

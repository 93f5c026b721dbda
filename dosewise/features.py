"""
features.py  —  Patient record → fixed-length numeric vector
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

Two schemas:
  DOSAGE_FEATURES     — used with a drug context by the per-drug regressors
  DIAGNOSIS_FEATURES  — used with no context by the disease classifier

Column order is fixed here and shared by training and inference.
Tags are one-hot encoded as independent presence flags.
"""

from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from .schemas import (
    FamilyHistory,
    Gender,
    GeneticMarker,
    LifestyleFactor,
    MedicalCondition,
    Medication,
    PatientProfile,
    Symptom,
)

BLOOD_TEST_PLACEHOLDER = 0.5

# field → divisor
BLOOD_TEST_SCALES = {
    "glucose":                200,
    "cholesterol":            300,
    "hemoglobin":             20,
    "white_blood_cell_count": 15000,
    "platelet_count":         500000,
}


def _flags(prefix, enum):
    return [f"{prefix}_{member.name.lower()}" for member in enum]


_BODY = ["age", "weight", "height", "bmi"] + _flags("gender", Gender)

DOSAGE_FEATURES = (
    _BODY
    + _flags("genetic", GeneticMarker)
    + _flags("medical", MedicalCondition)
    + _flags("medication", Medication)
)

DIAGNOSIS_FEATURES = (
    _BODY
    + ["bp_systolic", "bp_diastolic", "heart_rate", "body_temperature"]
    + _flags("symptom", Symptom)
    + _flags("family", FamilyHistory)
    + _flags("lifestyle", LifestyleFactor)
    + [f"blood_{name}" for name in BLOOD_TEST_SCALES]
)


def feature_schema(context: Optional[str] = None) -> List[str]:
    """Ordered feature names for a drug context, or the diagnosis schema for None."""
    return list(DOSAGE_FEATURES if context is not None else DIAGNOSIS_FEATURES)


def _one_hot(enum, present) -> List[float]:
    return [1.0 if member in present else 0.0 for member in enum]


def _body(patient: PatientProfile) -> List[float]:
    return [
        patient.age / 100,
        patient.weight / 150,
        patient.height / 200,
        patient.bmi / 40,
    ] + _one_hot(Gender, {patient.gender})


def _blood(patient: PatientProfile) -> List[float]:
    tests = patient.blood_tests
    if tests is None:
        return [BLOOD_TEST_PLACEHOLDER] * len(BLOOD_TEST_SCALES)
    return [getattr(tests, name) / scale for name, scale in BLOOD_TEST_SCALES.items()]


def encode(patient: PatientProfile, context: Optional[str] = None) -> np.ndarray:
    """
    Encode one patient. `context` is a drug name (dosage schema) or None
    (diagnosis schema). Vector length depends only on the schema.
    """
    values = _body(patient)
    if context is not None:
        values += _one_hot(GeneticMarker, patient.genetic_markers)
        values += _one_hot(MedicalCondition, patient.medical_history)
        values += _one_hot(Medication, patient.current_medications)
    else:
        values += [
            patient.blood_pressure_systolic / 200,
            patient.blood_pressure_diastolic / 120,
            patient.heart_rate / 200,
            (patient.body_temperature - 35) / 5,
        ]
        values += _one_hot(Symptom, patient.symptoms)
        values += _one_hot(FamilyHistory, patient.family_history)
        values += _one_hot(LifestyleFactor, patient.lifestyle)
        values += _blood(patient)
    return np.asarray(values, dtype=float)


def encode_frame(patients: Iterable[PatientProfile], context: Optional[str] = None) -> pd.DataFrame:
    """Encode many patients into a DataFrame whose columns are the schema."""
    columns = feature_schema(context)
    rows = [encode(p, context) for p in patients]
    if not rows:
        return pd.DataFrame(columns=columns, dtype=float)
    return pd.DataFrame(np.vstack(rows), columns=columns)

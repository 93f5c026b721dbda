"""
synthetic.py
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
Generates randomized patients and historical "optimal dose" labels that the
models are fitted on.

What this file knows about the data it makes:
  - ages 18–88, weight / height ranges shifted by gender (and age for weight)
  - every tag set is a random-size subset of its catalog, no duplicates
  - each patient gets 1–3 drugs; the label is the rule-engine dose
    × a jitter in [0.9, 1.1], effectiveness in [0.75, 0.98]
  - pass a seed (or a random.Random) and the output is reproducible
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .config import BASE_DOSAGES
from .schemas import (
    BloodTests,
    DosageRecord,
    FamilyHistory,
    Gender,
    GeneticMarker,
    LifestyleFactor,
    MedicalCondition,
    Medication,
    PatientProfile,
    Symptom,
)
from .scoring import score_dosage

logger = logging.getLogger(__name__)

DRUGS = tuple(BASE_DOSAGES)

# (min, max) subset sizes per tag set
TAG_COUNTS = {
    "genetic_markers":     (0, 2),
    "medical_history":     (0, 3),
    "current_medications": (0, 3),
    "symptoms":            (3, 7),
    "family_history":      (0, 3),
    "lifestyle":           (2, 5),
}
DRUGS_PER_PATIENT = (1, 3)
JITTER_RANGE = (0.9, 1.1)
EFFECTIVENESS_RANGE = (0.75, 0.98)


@dataclass(frozen=True)
class SyntheticDataset:
    patients: Tuple[PatientProfile, ...]
    dosage_records: Tuple[DosageRecord, ...]

    def __len__(self):
        return len(self.patients)

    def patient(self, patient_id: str) -> Optional[PatientProfile]:
        return self._index().get(patient_id)

    def _index(self) -> Dict[str, PatientProfile]:
        return {p.id: p for p in self.patients}

    def records_for(self, drug_name: str) -> List[DosageRecord]:
        drug = drug_name.strip().lower()
        return [r for r in self.dosage_records if r.drug_name == drug]

    def training_pairs(self, drug_name: str) -> List[Tuple[PatientProfile, DosageRecord]]:
        """(patient, record) pairs for one drug; orphan records are skipped."""
        index = self._index()
        return [
            (index[r.patient_id], r)
            for r in self.records_for(drug_name)
            if r.patient_id in index
        ]

    def drugs(self) -> List[str]:
        return sorted({r.drug_name for r in self.dosage_records})

    def to_frame(self) -> pd.DataFrame:
        """One row per dosage record, joined to the patient's attributes."""
        index = self._index()
        rows = []
        for r in self.dosage_records:
            p = index.get(r.patient_id)
            if p is None:
                continue
            rows.append({
                "patient_id":     r.patient_id,
                "drug":           r.drug_name,
                "dose_mg":        r.optimal_dosage,
                "effectiveness":  r.actual_effectiveness,
                "age_years":      p.age,
                "gender":         p.gender.value,
                "weight_kg":      p.weight,
                "height_cm":      p.height,
                "bmi":            round(p.bmi, 2),
                "n_markers":      len(p.genetic_markers),
                "n_conditions":   len(p.medical_history),
                "n_medications":  len(p.current_medications),
            })
        return pd.DataFrame(rows)


# ─────────────────────────────────────────────────────────────────
# PATIENTS
# ─────────────────────────────────────────────────────────────────
def _subset(rng: random.Random, enum, bounds) -> frozenset:
    members = list(enum)
    size = min(rng.randint(*bounds), len(members))
    return frozenset(rng.sample(members, size))


def _body(rng: random.Random, gender: Gender, age: int):
    weight_min, weight_max = 50, 100
    height_min, height_max = 150, 190
    if age > 65:
        weight_min -= 5
        weight_max -= 10
    if gender == Gender.FEMALE:
        weight_min -= 10
        weight_max -= 15
        height_min -= 10
        height_max -= 15
    weight = round(rng.uniform(weight_min, weight_max), 1)
    height = rng.randint(height_min, height_max)
    return weight, height


def _vitals(rng: random.Random, age: int, lifestyle: frozenset):
    systolic, diastolic = 120, 80
    heart_rate = 70 + rng.randint(0, 29)
    if age > 50:
        systolic += rng.randint(0, 29)
        diastolic += rng.randint(0, 14)
    if LifestyleFactor.SMOKING in lifestyle or LifestyleFactor.ALCOHOL in lifestyle:
        systolic += rng.randint(0, 19)
        diastolic += rng.randint(0, 9)
    if LifestyleFactor.REGULAR_EXERCISE in lifestyle:
        systolic -= rng.randint(0, 9)
        diastolic -= rng.randint(0, 4)
        heart_rate -= rng.randint(0, 14)
    temperature = round(36.5 + rng.random() * 1.5, 1)
    return systolic, diastolic, heart_rate, temperature


def _blood_tests(rng: random.Random) -> BloodTests:
    return BloodTests(
        glucose=90 + rng.randint(0, 59),
        cholesterol=150 + rng.randint(0, 99),
        hemoglobin=round(12 + rng.random() * 6, 1),
        white_blood_cell_count=4000 + rng.randint(0, 5999),
        platelet_count=150000 + rng.randint(0, 299999),
    )


def generate_patient(seed: Optional[int] = None, rng: Optional[random.Random] = None,
                     patient_id: Optional[str] = None) -> PatientProfile:
    """One random patient. Same seed → same patient."""
    rng = rng or random.Random(seed)
    patient_id = patient_id or f"P{rng.randint(1000, 9999)}"
    age = rng.randint(18, 88)
    gender = rng.choice(list(Gender))
    weight, height = _body(rng, gender, age)
    lifestyle = _subset(rng, LifestyleFactor, TAG_COUNTS["lifestyle"])
    systolic, diastolic, heart_rate, temperature = _vitals(rng, age, lifestyle)

    return PatientProfile(
        id=patient_id,
        age=age,
        gender=gender,
        weight=weight,
        height=height,
        genetic_markers=_subset(rng, GeneticMarker, TAG_COUNTS["genetic_markers"]),
        medical_history=_subset(rng, MedicalCondition, TAG_COUNTS["medical_history"]),
        current_medications=_subset(rng, Medication, TAG_COUNTS["current_medications"]),
        blood_pressure_systolic=systolic,
        blood_pressure_diastolic=diastolic,
        heart_rate=heart_rate,
        body_temperature=temperature,
        symptoms=_subset(rng, Symptom, TAG_COUNTS["symptoms"]),
        family_history=_subset(rng, FamilyHistory, TAG_COUNTS["family_history"]),
        lifestyle=lifestyle,
        blood_tests=_blood_tests(rng),
    )


def generate_patients(count: int, seed: Optional[int] = None,
                      rng: Optional[random.Random] = None) -> List[PatientProfile]:
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    rng = rng or random.Random(seed)
    return [generate_patient(rng=rng, patient_id=f"P{1000 + i}") for i in range(count)]


# ─────────────────────────────────────────────────────────────────
# DOSAGE LABELS
# ─────────────────────────────────────────────────────────────────
def generate_dataset(count: int, seed: Optional[int] = None,
                     rng: Optional[random.Random] = None) -> SyntheticDataset:
    """`count` patients plus 1–3 jittered dosage records each."""
    rng = rng or random.Random(seed)
    patients = generate_patients(count, rng=rng)
    records = []

    for patient in patients:
        for drug in rng.sample(DRUGS, rng.randint(*DRUGS_PER_PATIENT)):
            dosage = score_dosage(patient, drug, jitter=rng.uniform(*JITTER_RANGE))
            if dosage <= 0:
                continue
            records.append(DosageRecord(
                patient_id=patient.id,
                drug_name=drug,
                optimal_dosage=dosage,
                actual_effectiveness=round(rng.uniform(*EFFECTIVENESS_RANGE), 2),
            ))

    dataset = SyntheticDataset(tuple(patients), tuple(records))
    logger.info("Generated %d patients, %d dosage records", len(patients), len(records))
    return dataset


if __name__ == "__main__":
    frame = generate_dataset(200, seed=7).to_frame()
    print(frame.head(10))
    print(frame["drug"].value_counts().to_dict())

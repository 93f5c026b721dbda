"""
scoring.py  —  Deterministic rule engine
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

Dosage   → base dose × weight × age × genetics × comorbidities,
           rounded to the nearest 5 mg.
Diagnosis → symptom / risk-factor checklist; highest score wins.

Both are pure functions of the patient record. The learned models in
model.py are trained to imitate them, and fall back to them.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional

from . import catalog
from .config import (
    BASE_DOSAGES,
    DEFAULT_BASE_DOSAGE,
    DOSAGE_STEP_MG,
    KIDNEY_DISEASE_FACTOR,
    LIVER_DISEASE_FACTOR,
    PEDIATRIC_AGE_FACTOR,
    PEDIATRIC_AGE_LIMIT,
    POOR_METABOLIZER_FACTOR,
    RAPID_METABOLIZER_FACTOR,
    REFERENCE_WEIGHT_KG,
    SENIOR_AGE_FACTOR,
    SENIOR_AGE_LIMIT,
)
from .diet import recommended_diet
from .schemas import (
    DiagnosisResult,
    GeneticMarker,
    MedicalCondition,
    PatientProfile,
    RelatedDisease,
)

RELATED_SCALE = 12           # raw score → related-disease probability
RELATED_CAP = 0.95
RELATED_THRESHOLD = 0.1
MAX_RELATED = 3
WINNER_SCALE = 10
MAX_PROBABILITY = 0.99


# ─────────────────────────────────────────────────────────────────
# DOSAGE
# ─────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class AgeRule:
    pediatric_limit: int = PEDIATRIC_AGE_LIMIT
    pediatric_factor: float = PEDIATRIC_AGE_FACTOR
    senior_limit: int = SENIOR_AGE_LIMIT
    senior_factor: float = SENIOR_AGE_FACTOR


DEFAULT_AGE_RULE = AgeRule()


def base_dosage(drug_name: str) -> float:
    return BASE_DOSAGES.get(drug_name.strip().lower(), DEFAULT_BASE_DOSAGE)


def weight_factor(patient: PatientProfile) -> float:
    return patient.weight / REFERENCE_WEIGHT_KG


def age_factor(patient: PatientProfile, rule: Optional[AgeRule] = None) -> float:
    rule = rule or DEFAULT_AGE_RULE
    if patient.age > rule.senior_limit:
        return rule.senior_factor
    if patient.age < rule.pediatric_limit:
        return rule.pediatric_factor
    return 1.0


def genetic_factor(patient: PatientProfile) -> float:
    # poor metabolizer is checked first and wins if both are present
    if GeneticMarker.CYP2D6_POOR in patient.genetic_markers:
        return POOR_METABOLIZER_FACTOR
    if GeneticMarker.CYP2D6_RAPID in patient.genetic_markers:
        return RAPID_METABOLIZER_FACTOR
    return 1.0


def medical_factor(patient: PatientProfile) -> float:
    factor = 1.0
    if MedicalCondition.LIVER_DISEASE in patient.medical_history:
        factor *= LIVER_DISEASE_FACTOR
    if MedicalCondition.KIDNEY_DISEASE in patient.medical_history:
        factor *= KIDNEY_DISEASE_FACTOR
    return factor


def round_to_step(dosage_mg: float, step: int = DOSAGE_STEP_MG) -> float:
    """Half-up rounding to the nearest `step` mg, never negative."""
    return float(max(0, math.floor(dosage_mg / step + 0.5)) * step)


def score_dosage(patient: PatientProfile, drug_name: str, jitter: float = 1.0,
                 age_rule: Optional[AgeRule] = None) -> float:
    """
    Reference dose in mg for `drug_name`.
    `jitter` is only used when generating synthetic training labels.
    """
    dosage = (
        base_dosage(drug_name)
        * weight_factor(patient)
        * age_factor(patient, age_rule)
        * genetic_factor(patient)
        * medical_factor(patient)
        * jitter
    )
    return round_to_step(dosage)


# ─────────────────────────────────────────────────────────────────
# DIAGNOSIS
# ─────────────────────────────────────────────────────────────────
class DiseaseScore(NamedTuple):
    disease: str
    score: int


def disease_scores(patient: PatientProfile) -> Dict[str, int]:
    """Checklist points for every disease, in catalog order."""
    scores = dict.fromkeys(catalog.DISEASES, 0)

    for disease, pairs in catalog.SYMPTOM_POINTS.items():
        scores[disease] += sum(pts for symptom, pts in pairs if symptom in patient.symptoms)

    risk_factors = set(patient.family_history) | set(patient.lifestyle)
    for disease, pairs in catalog.RISK_FACTOR_POINTS.items():
        scores[disease] += sum(pts for factor, pts in pairs if factor in risk_factors)

    for rule in catalog.CLINICAL_RULES:
        if rule.applies(patient):
            for disease, pts in rule.points.items():
                scores[disease] += pts
    return scores


def _winner(scores: Dict[str, int]) -> DiseaseScore:
    best = DiseaseScore(catalog.BASELINE_DISEASE, 0)
    for disease, score in scores.items():
        if score > best.score:
            best = DiseaseScore(disease, score)
    return best


def score_disease(patient: PatientProfile) -> DiseaseScore:
    """Top-scoring disease; the first one in catalog order wins a tie."""
    return _winner(disease_scores(patient))


def related_diseases(scores: Dict[str, int], winner: str) -> List[RelatedDisease]:
    candidates = [
        RelatedDisease(name=name, probability=min(RELATED_CAP, score / RELATED_SCALE))
        for name, score in scores.items()
        if name != winner
    ]
    candidates = [c for c in candidates if c.probability > RELATED_THRESHOLD]
    candidates.sort(key=lambda c: c.probability, reverse=True)
    return candidates[:MAX_RELATED]


def recommended_medications(disease: str):
    return list(catalog.MEDICATIONS.get(disease, catalog.DEFAULT_MEDICATIONS))


def recommended_lifestyle_changes(disease: str) -> List[str]:
    specific = catalog.LIFESTYLE_CHANGES.get(disease, catalog.DEFAULT_LIFESTYLE_CHANGES)
    return list(catalog.COMMON_LIFESTYLE_CHANGES) + list(specific)


def follow_up_days(disease: str, probability: float) -> int:
    days = catalog.FOLLOW_UP_DAYS.get(disease, catalog.DEFAULT_FOLLOW_UP_DAYS)
    if probability > 0.9:
        days = max(catalog.MIN_FOLLOW_UP_DAYS, days - 7)
    elif probability < 0.7:
        days += 7
    return days


def build_diagnosis(disease: str, probability: float, related: List[RelatedDisease],
                    patient: PatientProfile) -> DiagnosisResult:
    """Attach treatment, diet, lifestyle and follow-up to a winning disease."""
    return DiagnosisResult(
        disease=disease,
        probability=probability,
        related_diseases=related,
        recommended_medications=recommended_medications(disease),
        recommended_diet=recommended_diet(disease, patient),
        recommended_lifestyle_changes=recommended_lifestyle_changes(disease),
        follow_up_in_days=follow_up_days(disease, probability),
    )


def score_diagnosis(patient: PatientProfile) -> DiagnosisResult:
    scores = disease_scores(patient)
    best = _winner(scores)

    if best.score == 0:
        probability = catalog.BASELINE_PROBABILITY
    else:
        probability = min(MAX_PROBABILITY, best.score / WINNER_SCALE)

    return build_diagnosis(best.disease, probability,
                           related_diseases(scores, best.disease), patient)

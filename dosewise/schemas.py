"""
Data models for the dosage and diagnosis engine.

Tag catalogs are closed enumerations: a patient record carrying a marker,
condition or symptom outside its catalog is rejected at validation time
instead of being silently ignored by the feature encoder.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InputValidationError


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class GeneticMarker(str, Enum):
    CYP2D6_NORMAL = "CYP2D6 - Normal Metabolizer"
    CYP2D6_POOR = "CYP2D6 - Poor Metabolizer"
    CYP2D6_RAPID = "CYP2D6 - Rapid Metabolizer"
    CYP2C19_NORMAL = "CYP2C19 - Normal Metabolizer"
    CYP2C19_POOR = "CYP2C19 - Poor Metabolizer"
    CYP3A4_NORMAL = "CYP3A4 - Normal Expression"
    CYP3A4_LOW = "CYP3A4 - Low Expression"


class MedicalCondition(str, Enum):
    HYPERTENSION = "Hypertension"
    DIABETES_TYPE_2 = "Diabetes Type 2"
    ASTHMA = "Asthma"
    KIDNEY_DISEASE = "Chronic Kidney Disease"
    LIVER_DISEASE = "Liver Disease"
    HEART_FAILURE = "Heart Failure"
    COPD = "COPD"


class Medication(str, Enum):
    LISINOPRIL = "Lisinopril"
    METFORMIN = "Metformin"
    ATORVASTATIN = "Atorvastatin"
    LEVOTHYROXINE = "Levothyroxine"
    ALBUTEROL = "Albuterol"
    OMEPRAZOLE = "Omeprazole"
    AMLODIPINE = "Amlodipine"


class Symptom(str, Enum):
    FEVER = "Fever"
    COUGH = "Cough"
    SHORTNESS_OF_BREATH = "Shortness of breath"
    FATIGUE = "Fatigue"
    HEADACHE = "Headache"
    SORE_THROAT = "Sore throat"
    RUNNY_NOSE = "Runny nose"
    WHEEZING = "Wheezing"
    MUSCLE_PAIN = "Muscle pain"
    CHEST_PAIN = "Chest pain"
    ABDOMINAL_PAIN = "Abdominal pain"
    NAUSEA = "Nausea"
    VOMITING = "Vomiting"
    DIARRHEA = "Diarrhea"
    LOSS_OF_TASTE_OR_SMELL = "Loss of taste or smell"
    RASH = "Rash"
    JOINT_PAIN = "Joint pain"
    DIZZINESS = "Dizziness"
    CONFUSION = "Confusion"


class FamilyHistory(str, Enum):
    DIABETES = "Diabetes"
    HEART_DISEASE = "Heart disease"
    HYPERTENSION = "Hypertension"
    CANCER = "Cancer"
    STROKE = "Stroke"
    ASTHMA = "Asthma"
    ALZHEIMERS = "Alzheimer's disease"
    ARTHRITIS = "Arthritis"
    DEPRESSION = "Depression"
    OBESITY = "Obesity"


class LifestyleFactor(str, Enum):
    SMOKING = "Smoking"
    ALCOHOL = "Alcohol consumption"
    SEDENTARY = "Sedentary lifestyle"
    REGULAR_EXERCISE = "Regular exercise"
    BALANCED_DIET = "Balanced diet"
    HIGH_STRESS = "High stress levels"
    POOR_SLEEP = "Poor sleep"
    DRUG_USE = "Drug use"


class PredictionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ── Patient input ──────────────────────────────────────────────────────────────
class BloodTests(_Frozen):
    glucose: float = Field(gt=0, description="mg/dL")
    cholesterol: float = Field(gt=0, description="mg/dL")
    hemoglobin: float = Field(gt=0, description="g/dL")
    white_blood_cell_count: float = Field(gt=0, description="cells/mcL")
    platelet_count: float = Field(gt=0, description="platelets/mcL")


class PatientProfile(_Frozen):
    """Patient attributes shared by the dosage and the diagnosis flows.

    Vitals default to a healthy adult so that a dosage-only record is also a
    valid diagnosis input.
    """

    id: str = Field(min_length=1)
    age: int = Field(ge=0, le=120)
    gender: Gender
    weight: float = Field(gt=0, description="kg")
    height: float = Field(gt=0, description="cm")
    genetic_markers: FrozenSet[GeneticMarker] = frozenset()
    medical_history: FrozenSet[MedicalCondition] = frozenset()
    current_medications: FrozenSet[Medication] = frozenset()

    blood_pressure_systolic: float = Field(default=120, gt=0)
    blood_pressure_diastolic: float = Field(default=80, gt=0)
    heart_rate: float = Field(default=72, gt=0)
    body_temperature: float = Field(default=36.8, gt=0, description="Celsius")
    symptoms: FrozenSet[Symptom] = frozenset()
    family_history: FrozenSet[FamilyHistory] = frozenset()
    lifestyle: FrozenSet[LifestyleFactor] = frozenset()
    blood_tests: Optional[BloodTests] = None

    @property
    def bmi(self) -> float:
        height_m = self.height / 100
        return self.weight / (height_m ** 2)


def parse_patient(data: Mapping[str, Any]) -> PatientProfile:
    """Validate a raw mapping (API body, form payload) into a PatientProfile."""
    if isinstance(data, PatientProfile):
        return data
    try:
        return PatientProfile.model_validate(dict(data))
    except ValidationError as e:
        messages = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise InputValidationError(
            "Invalid patient record: " + "; ".join(messages), messages
        ) from e
    except TypeError as e:
        raise InputValidationError(f"Invalid patient record: {e}") from e


# ── Training labels ────────────────────────────────────────────────────────────
class DosageRecord(_Frozen):
    patient_id: str
    drug_name: str
    optimal_dosage: float = Field(gt=0, description="mg")
    actual_effectiveness: float = Field(ge=0.0, le=1.0)


# ── Diagnosis output ───────────────────────────────────────────────────────────
class MedicationAdvice(_Frozen):
    name: str
    dosage: str
    frequency: str
    duration: str


class MealPlan(_Frozen):
    breakfast: List[str]
    lunch: List[str]
    dinner: List[str]
    snacks: List[str]


class DietRecommendation(_Frozen):
    type: str
    daily_calories: int = Field(gt=0)
    meal_plan: MealPlan
    foods_to_avoid: List[str]
    foods_to_eat: List[str]
    water_intake: float = Field(description="liters")
    duration: int = Field(gt=0, description="days")


class RelatedDisease(_Frozen):
    name: str
    probability: float = Field(ge=0.0, le=1.0)


class DiagnosisResult(_Frozen):
    disease: str
    probability: float = Field(ge=0.0, le=0.99)
    related_diseases: List[RelatedDisease] = Field(default_factory=list, max_length=3)
    recommended_medications: List[MedicationAdvice]
    recommended_diet: DietRecommendation
    recommended_lifestyle_changes: List[str]
    follow_up_in_days: int = Field(gt=0)


# ── Dosage output ──────────────────────────────────────────────────────────────
class AlternativeMedication(_Frozen):
    name: str
    dosage: float


class PredictionResult(_Frozen):
    id: str
    patient_id: str
    drug_name: str
    recommended_dosage: float = Field(ge=0)
    confidence: float = Field(ge=0.0, le=1.0)
    alternative_medications: List[AlternativeMedication]
    blockchain_hash: str
    blockchain_tx_hash: Optional[str] = None
    timestamp: int = Field(description="milliseconds since the epoch")
    status: PredictionStatus
    source: str = Field(default="rule-based", description="which predictor produced the dose")
    ledger_message: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


# ── Ledger collaborator ────────────────────────────────────────────────────────
class LedgerReceipt(_Frozen):
    success: bool
    transaction_hash: Optional[str] = None
    error: Optional[str] = None


class LedgerVerification(_Frozen):
    exists: bool
    drug_name: Optional[str] = None
    dosage: Optional[float] = None
    timestamp: Optional[int] = None
    recorder: Optional[str] = None
    error: Optional[str] = None


def to_json(model: BaseModel) -> Dict[str, Any]:
    """JSON-safe dict (enums as values, frozensets as lists)."""
    return model.model_dump(mode="json")

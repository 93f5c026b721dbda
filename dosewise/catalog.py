"""
catalog.py  —  Clinical rule tables for the diagnosis checklist.
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

Every candidate disease carries a list of (symptom, points) and
(risk factor, points) pairs; threshold rules on vitals, blood tests and age
add the rest. DISEASES order matters: it breaks ties between equal scores.
"""

from typing import Callable, Dict, NamedTuple, Tuple

from .schemas import FamilyHistory as FH
from .schemas import LifestyleFactor as LF
from .schemas import MedicationAdvice, PatientProfile, Symptom as S

DISEASES = (
    "Common Cold",
    "Influenza",
    "COVID-19",
    "Pneumonia",
    "Bronchitis",
    "Asthma",
    "COPD",
    "Coronary Artery Disease",
    "Hypertension",
    "Type 2 Diabetes",
    "Migraine",
    "Gastritis",
    "Peptic Ulcer",
    "Irritable Bowel Syndrome",
    "Rheumatoid Arthritis",
    "Osteoarthritis",
    "Osteoporosis",
    "Anemia",
    "Hypothyroidism",
    "Hyperthyroidism",
)

BASELINE_DISEASE = "Common Cold"
BASELINE_PROBABILITY = 0.5

# ── Symptom checklist ──────────────────────────────────────────────────────────
SYMPTOM_POINTS: Dict[str, Tuple[Tuple[S, int], ...]] = {
    "Common Cold": ((S.COUGH, 2), (S.FEVER, 1), (S.SORE_THROAT, 3), (S.RUNNY_NOSE, 4),
                    (S.HEADACHE, 1)),
    "Influenza": ((S.COUGH, 2), (S.FEVER, 3), (S.SORE_THROAT, 2), (S.RUNNY_NOSE, 1),
                  (S.HEADACHE, 2), (S.NAUSEA, 2), (S.MUSCLE_PAIN, 3)),
    "COVID-19": ((S.COUGH, 2), (S.FEVER, 3), (S.SORE_THROAT, 1), (S.RUNNY_NOSE, 1),
                 (S.SHORTNESS_OF_BREATH, 3), (S.DIARRHEA, 1), (S.MUSCLE_PAIN, 2)),
    "Pneumonia": ((S.COUGH, 3), (S.FEVER, 3), (S.SHORTNESS_OF_BREATH, 4), (S.CHEST_PAIN, 2)),
    "Bronchitis": ((S.COUGH, 4), (S.WHEEZING, 3)),
    "Asthma": ((S.COUGH, 2), (S.SHORTNESS_OF_BREATH, 5), (S.WHEEZING, 5)),
    "COPD": ((S.COUGH, 3), (S.SHORTNESS_OF_BREATH, 5), (S.WHEEZING, 4)),
    "Coronary Artery Disease": ((S.SHORTNESS_OF_BREATH, 3), (S.CHEST_PAIN, 5)),
    "Hypertension": ((S.HEADACHE, 2), (S.DIZZINESS, 2)),
    "Type 2 Diabetes": (),
    "Migraine": ((S.HEADACHE, 4), (S.DIZZINESS, 3), (S.NAUSEA, 2)),
    "Gastritis": ((S.ABDOMINAL_PAIN, 4), (S.NAUSEA, 3), (S.DIARRHEA, 2)),
    "Peptic Ulcer": ((S.ABDOMINAL_PAIN, 4), (S.NAUSEA, 3)),
    "Irritable Bowel Syndrome": ((S.ABDOMINAL_PAIN, 3), (S.DIARRHEA, 4)),
    "Rheumatoid Arthritis": ((S.JOINT_PAIN, 5), (S.MUSCLE_PAIN, 1)),
    "Osteoarthritis": ((S.JOINT_PAIN, 4),),
    "Osteoporosis": (),
    "Anemia": ((S.DIZZINESS, 3),),
    "Hypothyroidism": (),
    "Hyperthyroidism": (),
}

# Family history and lifestyle entries both count as risk factors.
RISK_FACTOR_POINTS = {
    "Pneumonia": ((LF.SMOKING, 1),),
    "Asthma": ((FH.ASTHMA, 2), (LF.SMOKING, 1)),
    "COPD": ((LF.SMOKING, 3),),
    "Coronary Artery Disease": ((FH.HEART_DISEASE, 2), (LF.SMOKING, 2), (LF.SEDENTARY, 2)),
    "Hypertension": ((FH.HEART_DISEASE, 1), (FH.HYPERTENSION, 2), (LF.ALCOHOL, 1),
                     (LF.SEDENTARY, 2), (LF.HIGH_STRESS, 2)),
    "Type 2 Diabetes": ((FH.DIABETES, 2), (LF.SEDENTARY, 2)),
    "Migraine": ((LF.HIGH_STRESS, 2),),
    "Gastritis": ((LF.ALCOHOL, 2),),
    "Peptic Ulcer": ((LF.ALCOHOL, 2),),
    "Irritable Bowel Syndrome": ((LF.HIGH_STRESS, 2),),
    "Rheumatoid Arthritis": ((FH.ARTHRITIS, 2),),
    "Osteoarthritis": ((FH.ARTHRITIS, 2),),
    "Osteoporosis": ((LF.SEDENTARY, 1),),
}


# ── Threshold rules ────────────────────────────────────────────────────────────
class ClinicalRule(NamedTuple):
    name: str
    applies: Callable[[PatientProfile], bool]
    points: Dict[str, int]


def _blood(attr, compare):
    def check(patient):
        tests = patient.blood_tests
        return tests is not None and compare(getattr(tests, attr))
    return check


CLINICAL_RULES = (
    ClinicalRule(
        "elevated blood pressure",
        lambda p: p.blood_pressure_systolic > 140 or p.blood_pressure_diastolic > 90,
        {"Hypertension": 5, "Coronary Artery Disease": 2},
    ),
    ClinicalRule("low hemoglobin", _blood("hemoglobin", lambda v: v < 12), {"Anemia": 5}),
    ClinicalRule(
        "high white cell count",
        _blood("white_blood_cell_count", lambda v: v > 11000),
        {"Pneumonia": 2, "COVID-19": 2, "Influenza": 2},
    ),
    ClinicalRule("high glucose", _blood("glucose", lambda v: v > 126), {"Type 2 Diabetes": 5}),
    ClinicalRule(
        "high cholesterol",
        _blood("cholesterol", lambda v: v > 240),
        {"Coronary Artery Disease": 3, "Hypertension": 2},
    ),
    ClinicalRule(
        "age over 60",
        lambda p: p.age > 60,
        {"Coronary Artery Disease": 2, "Hypertension": 2, "Type 2 Diabetes": 1,
         "Osteoarthritis": 2, "Osteoporosis": 2},
    ),
    ClinicalRule("age under 18", lambda p: p.age < 18, {"Asthma": 1, "Common Cold": 1}),
)


# ── Treatment tables ───────────────────────────────────────────────────────────
def _med(name, dosage, frequency, duration):
    return MedicationAdvice(name=name, dosage=dosage, frequency=frequency, duration=duration)


ACETAMINOPHEN = _med("Acetaminophen", "500mg", "Every 6 hours as needed", "5 days")

MEDICATIONS = {
    "Common Cold": (ACETAMINOPHEN,
                    _med("Dextromethorphan", "30mg", "Every 6-8 hours as needed", "5 days")),
    "Influenza": (_med("Oseltamivir", "75mg", "Twice daily", "5 days"), ACETAMINOPHEN),
    "Pneumonia": (_med("Amoxicillin", "500mg", "Three times daily", "7-10 days"),
                  _med("Azithromycin", "500mg", "Once daily", "5 days")),
    "Coronary Artery Disease": (_med("Aspirin", "81mg", "Once daily", "Ongoing"),
                                _med("Atorvastatin", "20mg", "Once daily", "Ongoing")),
    "Hypertension": (_med("Lisinopril", "10mg", "Once daily", "Ongoing"),
                     _med("Hydrochlorothiazide", "12.5mg", "Once daily", "Ongoing")),
    "Type 2 Diabetes": (_med("Metformin", "500mg", "Twice daily", "Ongoing"),
                        _med("Glipizide", "5mg", "Once daily", "Ongoing")),
    "Migraine": (_med("Sumatriptan", "50mg", "As needed for migraine", "As needed"),
                 _med("Propranolol", "40mg", "Twice daily", "Ongoing for prevention")),
    "Gastritis": (_med("Omeprazole", "20mg", "Once daily", "14 days"),
                  _med("Sucralfate", "1g", "Four times daily", "14 days")),
    "Rheumatoid Arthritis": (_med("Methotrexate", "15mg", "Once weekly", "Ongoing"),
                             _med("Prednisone", "5mg", "Once daily", "As directed")),
}
DEFAULT_MEDICATIONS = (ACETAMINOPHEN,)

COMMON_LIFESTYLE_CHANGES = (
    "Get 7-8 hours of sleep each night",
    "Stay hydrated throughout the day",
    "Practice stress management techniques",
)

_CARDIOVASCULAR = (
    "Engage in moderate aerobic exercise for 30 minutes, 5 days a week",
    "Reduce sodium intake to less than 2,300mg per day",
    "Maintain a healthy weight",
    "Limit alcohol consumption",
    "Quit smoking",
)
_RESPIRATORY = (
    "Avoid known triggers (allergens, smoke, pollution)",
    "Use air purifiers at home",
    "Practice breathing exercises",
    "Quit smoking",
    "Get annual flu vaccine",
)
_JOINT = (
    "Engage in low-impact exercises like swimming or cycling",
    "Apply heat or cold packs to affected joints",
    "Maintain a healthy weight to reduce joint stress",
    "Use assistive devices when needed",
    "Practice gentle stretching exercises",
)

LIFESTYLE_CHANGES = {
    "Hypertension": _CARDIOVASCULAR,
    "Coronary Artery Disease": _CARDIOVASCULAR,
    "Type 2 Diabetes": (
        "Monitor blood glucose levels regularly",
        "Exercise for at least 150 minutes per week",
        "Maintain a consistent meal schedule",
        "Limit carbohydrate intake",
        "Maintain a healthy weight",
    ),
    "Asthma": _RESPIRATORY,
    "COPD": _RESPIRATORY,
    "Rheumatoid Arthritis": _JOINT,
    "Osteoarthritis": _JOINT,
    "Migraine": (
        "Identify and avoid personal migraine triggers",
        "Maintain a regular sleep schedule",
        "Stay hydrated",
        "Practice stress reduction techniques",
        "Consider keeping a migraine diary",
    ),
}
DEFAULT_LIFESTYLE_CHANGES = (
    "Engage in regular physical activity",
    "Maintain a balanced diet",
    "Stay hydrated",
    "Avoid smoking and excessive alcohol",
)

# Baseline follow-up (days) before the probability adjustment.
FOLLOW_UP_DAYS = {
    "Common Cold": 7,
    "Influenza": 7,
    "Pneumonia": 5,
    "COVID-19": 5,
    "Coronary Artery Disease": 30,
    "Hypertension": 30,
    "Type 2 Diabetes": 30,
    "Rheumatoid Arthritis": 21,
}
DEFAULT_FOLLOW_UP_DAYS = 14
MIN_FOLLOW_UP_DAYS = 3

"""
diet.py  —  Diet recommendations
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

Two layers, same as the dose engine:
  Rules    → per-disease diet type and food lists, calories adjusted for
             BMI / age / gender, water from body weight, extra foods when
             blood tests are out of range.
  ML       → optional random-forest calorie regressor trained on synthetic
             samples (generate_calorie_samples).
"""

import logging
import random
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestRegressor

from .config import MAX_DEPTH, MIN_SAMPLES_LEAF, N_ESTIMATORS, RANDOM_STATE
from .schemas import (
    DiagnosisResult,
    DietRecommendation,
    Gender,
    LifestyleFactor,
    MealPlan,
    MedicalCondition,
    PatientProfile,
)

logger = logging.getLogger(__name__)

WATER_LITERS_PER_KG = 0.033

DEFAULT_MEAL_PLAN = MealPlan(
    breakfast=["Oatmeal with berries", "Green tea", "Whole grain toast"],
    lunch=["Grilled chicken salad", "Quinoa", "Fresh fruit"],
    dinner=["Baked salmon", "Steamed vegetables", "Brown rice"],
    snacks=["Nuts", "Greek yogurt", "Apple with almond butter"],
)

# disease → (diet type, foods to avoid, foods to eat)
DISEASE_DIETS = {
    "Hypertension": (
        "Low Sodium",
        ["Processed foods", "Canned soups", "Deli meats", "Fast food", "Salty snacks"],
        ["Fresh fruits", "Fresh vegetables", "Whole grains", "Lean proteins", "Low-fat dairy"],
    ),
    "Type 2 Diabetes": (
        "Diabetic",
        ["Sugary drinks", "White bread", "White rice", "Pastries", "Candy", "Fruit juice"],
        ["Whole grains", "Leafy greens", "Fatty fish", "Nuts", "Beans", "Berries"],
    ),
    "Coronary Artery Disease": (
        "Heart Healthy",
        ["Fried foods", "Red meat", "Butter", "Full-fat dairy", "Baked goods", "Salt"],
        ["Fatty fish", "Olive oil", "Nuts", "Whole grains", "Fruits", "Vegetables"],
    ),
    "Gastritis": (
        "Gastric Friendly",
        ["Spicy foods", "Acidic foods", "Alcohol", "Coffee", "Chocolate", "Fried foods"],
        ["Bananas", "Rice", "Applesauce", "Toast", "Yogurt", "Lean proteins"],
    ),
    "Rheumatoid Arthritis": (
        "Anti-inflammatory",
        ["Processed foods", "Sugar", "Alcohol", "Red meat", "Fried foods"],
        ["Fatty fish", "Olive oil", "Nuts", "Berries", "Leafy greens", "Turmeric"],
    ),
}
DISEASE_DIETS["Peptic Ulcer"] = DISEASE_DIETS["Gastritis"]
DISEASE_DIETS["Osteoarthritis"] = DISEASE_DIETS["Rheumatoid Arthritis"]

GENERAL_DIET = (
    "General Healthy",
    ["Processed foods", "Excess sugar", "Excess salt", "Fried foods"],
    ["Fruits", "Vegetables", "Whole grains", "Lean proteins", "Healthy fats"],
)

# Structured plans used by generate_diet_plan.
DIET_PLANS = {
    "Low Sodium": dict(
        meal_plan=MealPlan(
            breakfast=["Oatmeal with fresh fruit", "Egg whites with vegetables",
                       "Whole grain toast with avocado"],
            lunch=["Grilled chicken salad", "Quinoa bowl with vegetables",
                   "Homemade soup with fresh ingredients"],
            dinner=["Baked fish with herbs", "Steamed vegetables", "Brown rice or sweet potato"],
            snacks=["Fresh fruit", "Unsalted nuts", "Yogurt", "Vegetable sticks"],
        ),
        foods_to_avoid=["Processed foods", "Canned soups", "Deli meats", "Fast food",
                        "Salty snacks", "Condiments", "Pickled foods"],
        foods_to_eat=["Fresh fruits", "Fresh vegetables", "Whole grains", "Lean proteins",
                      "Low-fat dairy", "Herbs and spices"],
        base_calories=2000,
    ),
    "Diabetic": dict(
        meal_plan=MealPlan(
            breakfast=["Egg white omelet with vegetables", "Steel-cut oatmeal with cinnamon",
                       "Greek yogurt with berries"],
            lunch=["Grilled chicken with quinoa", "Lentil soup with vegetables",
                   "Tuna salad with olive oil"],
            dinner=["Baked fish", "Roasted vegetables", "Small portion of whole grains"],
            snacks=["Handful of nuts", "Apple with almond butter", "Cheese stick",
                    "Vegetable sticks"],
        ),
        foods_to_avoid=["Sugary drinks", "White bread", "White rice", "Pastries", "Candy",
                        "Fruit juice", "Processed foods"],
        foods_to_eat=["Whole grains", "Leafy greens", "Fatty fish", "Nuts", "Beans",
                      "Citrus fruits", "Berries"],
        base_calories=1800,
    ),
    "Heart Healthy": dict(
        meal_plan=MealPlan(
            breakfast=["Oatmeal with berries", "Whole grain toast with avocado",
                       "Smoothie with greens and fruit"],
            lunch=["Salmon salad with olive oil", "Vegetable soup with beans",
                   "Quinoa bowl with vegetables"],
            dinner=["Grilled fish or lean poultry", "Steamed vegetables",
                    "Brown rice or sweet potato"],
            snacks=["Nuts", "Fresh fruit", "Dark chocolate (small piece)", "Yogurt"],
        ),
        foods_to_avoid=["Fried foods", "Red meat", "Butter", "Full-fat dairy", "Baked goods",
                        "Salt", "Processed foods"],
        foods_to_eat=["Fatty fish", "Olive oil", "Nuts", "Whole grains", "Fruits",
                      "Vegetables", "Legumes"],
        base_calories=1800,
    ),
    "Anti-inflammatory": dict(
        meal_plan=MealPlan(
            breakfast=["Smoothie with berries and spinach", "Chia seed pudding",
                       "Turmeric oatmeal with fruit"],
            lunch=["Grilled salmon with vegetables", "Quinoa salad with olive oil",
                   "Lentil soup"],
            dinner=["Baked fish with herbs", "Roasted vegetables with turmeric",
                    "Brown rice or sweet potato"],
            snacks=["Walnuts", "Berries", "Green tea", "Dark chocolate (small piece)"],
        ),
        foods_to_avoid=["Processed foods", "Fried foods", "Refined carbohydrates", "Sugar",
                        "Red meat", "Alcohol"],
        foods_to_eat=["Fatty fish", "Olive oil", "Nuts", "Berries", "Leafy greens",
                      "Turmeric", "Ginger", "Green tea"],
        base_calories=2000,
    ),
    "Weight Management": dict(
        meal_plan=MealPlan(
            breakfast=["Protein smoothie", "Egg whites with vegetables",
                       "Greek yogurt with berries"],
            lunch=["Large salad with lean protein", "Vegetable soup with beans",
                   "Grilled chicken with vegetables"],
            dinner=["Baked fish or lean poultry", "Large portion of vegetables",
                    "Small portion of whole grains"],
            snacks=["Apple", "Protein bar", "Vegetable sticks with hummus", "Greek yogurt"],
        ),
        foods_to_avoid=["Sugary drinks", "Processed foods", "Fried foods",
                        "Refined carbohydrates", "Alcohol", "High-calorie desserts"],
        foods_to_eat=["Lean proteins", "Vegetables", "Fruits", "Whole grains",
                      "Low-fat dairy", "Water"],
        base_calories=1600,
    ),
}

PLAN_FOR_DISEASE = {
    "Hypertension": "Low Sodium",
    "Type 2 Diabetes": "Diabetic",
    "Coronary Artery Disease": "Heart Healthy",
    "Asthma": "Anti-inflammatory",
    "Obesity": "Weight Management",
}
DEFAULT_PLAN = "Heart Healthy"


# ─────────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────────
def water_intake(weight_kg: float) -> float:
    return round(weight_kg * WATER_LITERS_PER_KG, 1)


def dedupe(items):
    """Drop repeated entries, keeping first-seen order."""
    return list(dict.fromkeys(items))


def blood_test_foods(patient: PatientProfile):
    """Extra (avoid, eat) foods driven by out-of-range blood tests."""
    avoid, eat = [], []
    tests = patient.blood_tests
    if tests is None:
        return avoid, eat

    if tests.cholesterol > 200:
        avoid += ["High-fat dairy", "Fried foods", "Processed meats"]
        eat += ["Oats", "Beans", "Plant sterols"]
    if tests.glucose > 120:
        avoid += ["White bread", "White rice", "Sugary drinks", "Candy"]
        eat += ["Whole grains", "Leafy greens", "Cinnamon", "Berries"]
    if tests.hemoglobin < 12:
        eat += ["Red meat", "Spinach", "Lentils", "Iron-fortified cereals"]
    return avoid, eat


def personalize_diet(base: DietRecommendation, patient: PatientProfile,
                     obese_factor: float = 0.8,
                     underweight_factor: float = 1.2) -> DietRecommendation:
    """
    Scales a base diet to the patient:
      BMI > 30 → × obese_factor, BMI > 25 → × 0.9, BMI < 18.5 → × underweight_factor
    Water is recomputed from current weight; food lists are extended from
    blood tests and de-duplicated.
    """
    bmi = patient.bmi
    calories = base.daily_calories
    if bmi > 30:
        calories = round(calories * obese_factor)
    elif bmi > 25:
        calories = round(calories * 0.9)
    elif bmi < 18.5:
        calories = round(calories * underweight_factor)

    extra_avoid, extra_eat = blood_test_foods(patient)
    return base.model_copy(update=dict(
        daily_calories=max(1, int(calories)),
        water_intake=water_intake(patient.weight),
        foods_to_avoid=dedupe(list(base.foods_to_avoid) + extra_avoid),
        foods_to_eat=dedupe(list(base.foods_to_eat) + extra_eat),
    ))


def _baseline_calories(patient: PatientProfile) -> int:
    bmi = patient.bmi
    if bmi > 30:
        calories = 1800
    elif bmi > 25:
        calories = 1900
    elif bmi < 18.5:
        calories = 2200
    else:
        calories = 2000

    if patient.gender == Gender.MALE:
        calories += 200
    if patient.age > 60:
        calories -= 200
    elif patient.age < 18:
        calories += 200
    return calories


# ─────────────────────────────────────────────────────────────────
# RULE-BASED DIETS
# ─────────────────────────────────────────────────────────────────
def recommended_diet(disease: str, patient: PatientProfile) -> DietRecommendation:
    """Diet attached to a checklist diagnosis."""
    diet_type, avoid, eat = DISEASE_DIETS.get(disease, GENERAL_DIET)
    extra_avoid, extra_eat = blood_test_foods(patient)
    return DietRecommendation(
        type=diet_type,
        daily_calories=_baseline_calories(patient),
        meal_plan=DEFAULT_MEAL_PLAN,
        foods_to_avoid=dedupe(avoid + extra_avoid),
        foods_to_eat=dedupe(eat + extra_eat),
        water_intake=water_intake(patient.weight),
        duration=30,
    )


def generate_diet_plan(diagnosis: DiagnosisResult, patient: PatientProfile) -> DietRecommendation:
    """
    Longer-term structured plan for a diagnosis: picks one of DIET_PLANS,
    applies BMI (×0.85 / ×0.9 / ×1.15), age, gender and activity multipliers,
    and sets the duration from diagnosis certainty.
    """
    plan_name = PLAN_FOR_DISEASE.get(diagnosis.disease, DEFAULT_PLAN)
    plan = DIET_PLANS[plan_name]

    adjustment = 1.0
    if patient.age > 60:
        adjustment *= 0.9
    elif patient.age < 30:
        adjustment *= 1.1
    if patient.gender == Gender.MALE:
        adjustment *= 1.1
    if LifestyleFactor.REGULAR_EXERCISE in patient.lifestyle:
        adjustment *= 1.2
    elif LifestyleFactor.SEDENTARY in patient.lifestyle:
        adjustment *= 0.9

    if diagnosis.probability > 0.8:
        duration = 120
    elif diagnosis.probability < 0.6:
        duration = 60
    else:
        duration = 90

    base = DietRecommendation(
        type=plan_name,
        daily_calories=round(plan["base_calories"] * adjustment),
        meal_plan=plan["meal_plan"],
        foods_to_avoid=plan["foods_to_avoid"],
        foods_to_eat=plan["foods_to_eat"],
        water_intake=water_intake(patient.weight),
        duration=duration,
    )
    return personalize_diet(base, patient, obese_factor=0.85, underweight_factor=1.15)


# ─────────────────────────────────────────────────────────────────
# CALORIE REGRESSOR
# ─────────────────────────────────────────────────────────────────
CALORIE_FEATURES = [
    "age", "is_male", "weight", "height", "bmi", "activity_level",
    "has_hypertension", "has_diabetes", "has_heart_disease",
]


def _calorie_row(age, male, weight, height, activity, hypertension, diabetes, heart):
    bmi = weight / ((height / 100) ** 2)
    return {
        "age":               age / 100,
        "is_male":           int(male),
        "weight":            weight / 150,
        "height":            height / 200,
        "bmi":               bmi / 40,
        "activity_level":    activity / 5,
        "has_hypertension":  int(hypertension),
        "has_diabetes":      int(diabetes),
        "has_heart_disease": int(heart),
    }


def generate_calorie_samples(count: int, seed: Optional[int] = None,
                             rng: Optional[random.Random] = None) -> pd.DataFrame:
    """Synthetic (features, optimal_calories) rows for the calorie regressor."""
    rng = rng or random.Random(seed)
    rows = []
    for _ in range(count):
        male = rng.random() > 0.5
        age = rng.randint(18, 87)
        weight = rng.randint(60, 99) if male else rng.randint(50, 79)
        height = rng.randint(160, 189) if male else rng.randint(150, 174)
        activity = rng.randint(1, 5)
        hypertension = rng.random() > 0.7
        diabetes = rng.random() > 0.8
        heart = rng.random() > 0.85

        calories = 2000 if male else 1800
        if age > 50:
            calories *= 0.9
        elif age < 30:
            calories *= 1.1
        calories *= 0.8 + activity * 0.1

        bmi = weight / ((height / 100) ** 2)
        if bmi > 30:
            calories *= 0.85
        elif bmi > 25:
            calories *= 0.9
        elif bmi < 18.5:
            calories *= 1.15

        if hypertension:
            calories *= 0.95
        if diabetes:
            calories *= 0.9
        if heart:
            calories *= 0.9
        calories *= 0.9 + rng.random() * 0.2

        row = _calorie_row(age, male, weight, height, activity, hypertension, diabetes, heart)
        row["optimal_calories"] = round(calories)
        rows.append(row)
    return pd.DataFrame(rows, columns=CALORIE_FEATURES + ["optimal_calories"])


def train_calorie_model(frame: pd.DataFrame, n_estimators: int = N_ESTIMATORS):
    if frame.empty:
        raise ValueError("Cannot train the calorie model on an empty frame")
    model = RandomForestRegressor(
        n_estimators=n_estimators,
        max_depth=MAX_DEPTH,
        min_samples_leaf=MIN_SAMPLES_LEAF,
        n_jobs=-1,
        random_state=RANDOM_STATE,
    )
    model.fit(frame[CALORIE_FEATURES], frame["optimal_calories"] / 3000)
    logger.info("Calorie model trained on %d rows", len(frame))
    return model


def _activity_level(patient: PatientProfile) -> int:
    if LifestyleFactor.REGULAR_EXERCISE in patient.lifestyle:
        return 4
    if LifestyleFactor.SEDENTARY in patient.lifestyle:
        return 1
    return 3


def predict_calories(model, patient: PatientProfile) -> int:
    history = patient.medical_history
    row = _calorie_row(
        patient.age,
        patient.gender == Gender.MALE,
        patient.weight,
        patient.height,
        _activity_level(patient),
        MedicalCondition.HYPERTENSION in history,
        MedicalCondition.DIABETES_TYPE_2 in history,
        MedicalCondition.HEART_FAILURE in history,
    )
    X = pd.DataFrame([row], columns=CALORIE_FEATURES)
    return int(np.round(model.predict(X)[0] * 3000))

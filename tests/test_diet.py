import unittest

from dosewise.diet import (
    dedupe,
    generate_calorie_samples,
    generate_diet_plan,
    personalize_diet,
    predict_calories,
    recommended_diet,
    train_calorie_model,
)
from dosewise.schemas import BloodTests, LifestyleFactor, PatientProfile
from dosewise.scoring import score_diagnosis
from dosewise.synthetic import generate_patients


def make_patient(**overrides):
    data = dict(id="P1", age=30, gender="male", weight=70, height=170)
    data.update(overrides)
    return PatientProfile(**data)


HIGH_SUGAR = BloodTests(glucose=130, cholesterol=250, hemoglobin=11,
                        white_blood_cell_count=6000, platelet_count=200000)


class RecommendedDietTests(unittest.TestCase):

    def test_no_duplicates_after_blood_test_extras(self):
        diet = recommended_diet("Type 2 Diabetes", make_patient(blood_tests=HIGH_SUGAR))
        self.assertEqual(len(diet.foods_to_avoid), len(set(diet.foods_to_avoid)))
        self.assertEqual(len(diet.foods_to_eat), len(set(diet.foods_to_eat)))
        self.assertIn("Processed meats", diet.foods_to_avoid)
        self.assertIn("Spinach", diet.foods_to_eat)

    def test_unknown_disease_gets_general_diet(self):
        diet = recommended_diet("Common Cold", make_patient())
        self.assertEqual(diet.type, "General Healthy")
        self.assertEqual(diet.duration, 30)
        # normal BMI 2000 + male 200
        self.assertEqual(diet.daily_calories, 2200)
        self.assertAlmostEqual(diet.water_intake, 2.3)

    def test_no_duplicates_across_random_diagnoses(self):
        for patient in generate_patients(30, seed=8):
            diet = score_diagnosis(patient).recommended_diet
            self.assertEqual(len(diet.foods_to_avoid), len(set(diet.foods_to_avoid)))
            self.assertEqual(len(diet.foods_to_eat), len(set(diet.foods_to_eat)))

    def test_dedupe_keeps_first_seen_order(self):
        self.assertEqual(dedupe(["b", "a", "b", "c", "a"]), ["b", "a", "c"])


class PersonalizedDietTests(unittest.TestCase):

    def test_obese_patient_gets_fewer_calories(self):
        base = recommended_diet("Hypertension", make_patient())
        heavy = make_patient(weight=110)
        diet = personalize_diet(base, heavy)
        self.assertEqual(diet.daily_calories, round(base.daily_calories * 0.8))
        self.assertAlmostEqual(diet.water_intake, 3.6)

    def test_plan_duration_follows_certainty(self):
        patient = make_patient(lifestyle={LifestyleFactor.REGULAR_EXERCISE})
        diagnosis = score_diagnosis(patient)
        plan = generate_diet_plan(diagnosis, patient)
        self.assertEqual(plan.duration, 60)
        self.assertEqual(plan.type, "Heart Healthy")


class CalorieModelTests(unittest.TestCase):

    def test_samples_are_reproducible(self):
        a = generate_calorie_samples(20, seed=3)
        b = generate_calorie_samples(20, seed=3)
        self.assertTrue(a.equals(b))

    def test_trained_model_predicts_plausible_calories(self):
        model = train_calorie_model(generate_calorie_samples(80, seed=1), n_estimators=10)
        calories = predict_calories(model, make_patient())
        self.assertGreater(calories, 1000)
        self.assertLess(calories, 3500)

    def test_empty_frame_rejected(self):
        with self.assertRaises(ValueError):
            train_calorie_model(generate_calorie_samples(0, seed=1))


if __name__ == "__main__":
    unittest.main()

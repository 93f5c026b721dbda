import unittest

from dosewise import catalog
from dosewise.schemas import (
    BloodTests,
    GeneticMarker,
    MedicalCondition,
    PatientProfile,
    Symptom,
)
from dosewise.scoring import (
    AgeRule,
    age_factor,
    disease_scores,
    follow_up_days,
    related_diseases,
    round_to_step,
    score_diagnosis,
    score_disease,
    score_dosage,
)
from dosewise.synthetic import DRUGS, generate_patients


def make_patient(**overrides):
    data = dict(id="P1", age=30, gender="male", weight=70, height=170)
    data.update(overrides)
    return PatientProfile(**data)


class DosageScenarioTests(unittest.TestCase):

    def test_reference_adult_ibuprofen(self):
        self.assertEqual(score_dosage(make_patient(), "ibuprofen"), 400)

    def test_poor_metabolizer(self):
        patient = make_patient(genetic_markers={GeneticMarker.CYP2D6_POOR})
        self.assertEqual(score_dosage(patient, "ibuprofen"), 280)

    def test_senior_with_liver_disease(self):
        patient = make_patient(age=70, medical_history={MedicalCondition.LIVER_DISEASE})
        self.assertEqual(score_dosage(patient, "metformin"), 280)

    def test_liver_and_kidney_factors_compound(self):
        patient = make_patient(medical_history={MedicalCondition.LIVER_DISEASE,
                                                MedicalCondition.KIDNEY_DISEASE})
        # 400 × 0.7 × 0.8 = 224 → 225
        self.assertEqual(score_dosage(patient, "ibuprofen"), 225)

    def test_poor_metabolizer_wins_over_rapid(self):
        patient = make_patient(genetic_markers={GeneticMarker.CYP2D6_POOR,
                                                GeneticMarker.CYP2D6_RAPID})
        self.assertEqual(score_dosage(patient, "ibuprofen"), 280)

    def test_unknown_drug_uses_default_base(self):
        self.assertEqual(score_dosage(make_patient(), "  Mystery-Drug "), 100)

    def test_drug_name_is_case_insensitive(self):
        self.assertEqual(score_dosage(make_patient(), "IBUPROFEN"), 400)


class DosagePropertyTests(unittest.TestCase):

    def setUp(self):
        self.patients = generate_patients(40, seed=11)

    def test_always_multiple_of_five(self):
        for patient in self.patients:
            for drug in DRUGS:
                self.assertEqual(score_dosage(patient, drug) % 5, 0)

    def test_repeated_calls_agree(self):
        for patient in self.patients[:10]:
            self.assertEqual(score_dosage(patient, "amoxicillin"),
                             score_dosage(patient, "amoxicillin"))

    def test_heavier_never_gets_less(self):
        previous = 0
        for weight in range(30, 150, 3):
            dose = score_dosage(make_patient(weight=weight), "lisinopril")
            self.assertGreaterEqual(dose, previous)
            previous = dose

    def test_round_half_up(self):
        self.assertEqual(round_to_step(402.5), 405)
        self.assertEqual(round_to_step(402.4), 400)
        self.assertEqual(round_to_step(-3), 0)

    def test_age_rule_boundaries(self):
        self.assertEqual(age_factor(make_patient(age=17)), 0.7)
        self.assertEqual(age_factor(make_patient(age=18)), 1.0)
        self.assertEqual(age_factor(make_patient(age=65)), 1.0)
        self.assertEqual(age_factor(make_patient(age=66)), 0.8)

    def test_custom_age_rule(self):
        rule = AgeRule(pediatric_limit=25, pediatric_factor=0.5)
        self.assertEqual(age_factor(make_patient(age=20), rule), 0.5)
        self.assertEqual(score_dosage(make_patient(age=20), "ibuprofen", age_rule=rule), 200)


class DiagnosisTests(unittest.TestCase):

    def test_respiratory_triad_resolves_to_influenza(self):
        patient = make_patient(symptoms={Symptom.COUGH, Symptom.FEVER, Symptom.SORE_THROAT})
        result = score_diagnosis(patient)

        self.assertEqual(result.disease, "Influenza")
        self.assertAlmostEqual(result.probability, 0.7)
        self.assertEqual([r.name for r in result.related_diseases],
                         ["Common Cold", "COVID-19", "Pneumonia"])
        for related in result.related_diseases:
            self.assertAlmostEqual(related.probability, 0.5)
        self.assertEqual(result.follow_up_in_days, 7)

    def test_empty_record_gives_baseline(self):
        result = score_diagnosis(make_patient())
        self.assertEqual(result.disease, catalog.BASELINE_DISEASE)
        self.assertEqual(result.probability, 0.5)
        self.assertEqual(result.related_diseases, [])
        # low certainty adds a week to the baseline follow-up
        self.assertEqual(result.follow_up_in_days, 14)

    def test_tie_goes_to_first_in_catalog(self):
        # Rheumatoid Arthritis and Osteoarthritis both get 2 from family history
        patient = make_patient(family_history={"Arthritis"})
        self.assertEqual(score_disease(patient).disease, "Rheumatoid Arthritis")

    def test_blood_tests_feed_clinical_rules(self):
        tests = BloodTests(glucose=150, cholesterol=180, hemoglobin=14,
                           white_blood_cell_count=7000, platelet_count=250000)
        scores = disease_scores(make_patient(blood_tests=tests))
        self.assertEqual(scores["Type 2 Diabetes"], 5)
        self.assertEqual(scores["Anemia"], 0)

    def test_high_blood_pressure(self):
        scores = disease_scores(make_patient(blood_pressure_systolic=150))
        self.assertEqual(scores["Hypertension"], 5)
        self.assertEqual(scores["Coronary Artery Disease"], 2)

    def test_related_capped_sorted_and_limited(self):
        scores = dict.fromkeys(catalog.DISEASES, 0)
        scores.update({"Influenza": 20, "Asthma": 13, "COPD": 3, "Migraine": 5, "Gastritis": 1})
        related = related_diseases(scores, "Influenza")

        self.assertEqual([r.name for r in related], ["Asthma", "Migraine", "COPD"])
        self.assertEqual(related[0].probability, 0.95)
        probs = [r.probability for r in related]
        self.assertEqual(probs, sorted(probs, reverse=True))

    def test_probability_bounds_on_random_patients(self):
        for patient in generate_patients(50, seed=4):
            result = score_diagnosis(patient)
            self.assertTrue(0 <= result.probability <= 0.99)
            self.assertLessEqual(len(result.related_diseases), 3)

    def test_follow_up_adjustments(self):
        self.assertEqual(follow_up_days("Pneumonia", 0.95), 3)
        self.assertEqual(follow_up_days("Hypertension", 0.95), 23)
        self.assertEqual(follow_up_days("Hypertension", 0.5), 37)
        self.assertEqual(follow_up_days("Migraine", 0.8), 14)


if __name__ == "__main__":
    unittest.main()

import random
import unittest

from dosewise.synthetic import (
    DRUGS,
    TAG_COUNTS,
    generate_dataset,
    generate_patient,
    generate_patients,
)


class GeneratePatientTests(unittest.TestCase):

    def test_same_seed_same_patients(self):
        self.assertEqual(generate_patients(10, seed=5), generate_patients(10, seed=5))
        self.assertNotEqual(generate_patients(10, seed=5), generate_patients(10, seed=6))

    def test_injected_rng(self):
        a = generate_patient(rng=random.Random(9), patient_id="X")
        b = generate_patient(rng=random.Random(9), patient_id="X")
        self.assertEqual(a, b)

    def test_values_in_range(self):
        for patient in generate_patients(100, seed=2):
            self.assertTrue(18 <= patient.age <= 88)
            self.assertGreater(patient.weight, 0)
            self.assertTrue(135 <= patient.height <= 190)
            low, high = TAG_COUNTS["symptoms"]
            self.assertTrue(low <= len(patient.symptoms) <= high)
            self.assertIsNotNone(patient.blood_tests)

    def test_ids_are_sequential(self):
        self.assertEqual([p.id for p in generate_patients(3, seed=1)], ["P1000", "P1001", "P1002"])

    def test_negative_count_rejected(self):
        with self.assertRaises(ValueError):
            generate_patients(-1)


class GenerateDatasetTests(unittest.TestCase):

    def setUp(self):
        self.dataset = generate_dataset(50, seed=3)

    def test_one_to_three_records_per_patient(self):
        per_patient = {}
        for record in self.dataset.dosage_records:
            per_patient[record.patient_id] = per_patient.get(record.patient_id, 0) + 1
        # doses that round to 0 mg (tiny base dose, many reductions) are dropped
        self.assertGreater(len(per_patient), len(self.dataset) // 2)
        self.assertLessEqual(set(per_patient), {p.id for p in self.dataset.patients})
        for count in per_patient.values():
            self.assertTrue(1 <= count <= 3)

    def test_labels_are_valid(self):
        for record in self.dataset.dosage_records:
            self.assertIn(record.drug_name, DRUGS)
            self.assertGreater(record.optimal_dosage, 0)
            self.assertEqual(record.optimal_dosage % 5, 0)
            self.assertTrue(0.75 <= record.actual_effectiveness <= 0.98)

    def test_training_pairs_join_patients(self):
        drug = self.dataset.drugs()[0]
        pairs = self.dataset.training_pairs(drug)
        self.assertEqual(len(pairs), len(self.dataset.records_for(drug)))
        for patient, record in pairs:
            self.assertEqual(patient.id, record.patient_id)

    def test_frame(self):
        frame = self.dataset.to_frame()
        self.assertEqual(len(frame), len(self.dataset.dosage_records))
        self.assertIn("dose_mg", frame.columns)

    def test_reproducible(self):
        self.assertEqual(generate_dataset(20, seed=1), generate_dataset(20, seed=1))


if __name__ == "__main__":
    unittest.main()

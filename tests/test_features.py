import unittest

from dosewise.features import (
    BLOOD_TEST_PLACEHOLDER,
    DIAGNOSIS_FEATURES,
    DOSAGE_FEATURES,
    encode,
    encode_frame,
    feature_schema,
)
from dosewise.schemas import BloodTests, GeneticMarker, PatientProfile, Symptom


def make_patient(**overrides):
    data = dict(id="P1", age=30, gender="male", weight=70, height=170)
    data.update(overrides)
    return PatientProfile(**data)


class EncodeTests(unittest.TestCase):

    def test_length_does_not_depend_on_optional_fields(self):
        bare = make_patient()
        full = make_patient(
            blood_tests=BloodTests(glucose=100, cholesterol=180, hemoglobin=14,
                                   white_blood_cell_count=6000, platelet_count=250000),
            symptoms={Symptom.COUGH, Symptom.FEVER},
            genetic_markers={GeneticMarker.CYP2C19_POOR},
        )
        for context in ("ibuprofen", None):
            self.assertEqual(len(encode(bare, context)), len(encode(full, context)))
            self.assertEqual(len(encode(bare, context)), len(feature_schema(context)))

    def test_drug_context_does_not_change_schema(self):
        self.assertEqual(len(encode(make_patient(), "ibuprofen")),
                         len(encode(make_patient(), "unknown-drug")))
        self.assertEqual(feature_schema("ibuprofen"), DOSAGE_FEATURES)
        self.assertEqual(feature_schema(None), DIAGNOSIS_FEATURES)

    def test_missing_blood_tests_use_placeholder(self):
        vector = encode(make_patient(), None)
        self.assertEqual(list(vector[-5:]), [BLOOD_TEST_PLACEHOLDER] * 5)

    def test_tags_are_one_hot(self):
        patient = make_patient(genetic_markers={GeneticMarker.CYP2D6_POOR})
        vector = dict(zip(DOSAGE_FEATURES, encode(patient, "ibuprofen")))
        self.assertEqual(vector["genetic_cyp2d6_poor"], 1.0)
        self.assertEqual(vector["genetic_cyp2d6_rapid"], 0.0)
        self.assertEqual(vector["gender_male"], 1.0)
        self.assertEqual(vector["gender_female"], 0.0)

    def test_normalization(self):
        vector = dict(zip(DOSAGE_FEATURES, encode(make_patient(), "ibuprofen")))
        self.assertAlmostEqual(vector["age"], 0.3)
        self.assertAlmostEqual(vector["height"], 0.85)


class EncodeFrameTests(unittest.TestCase):

    def test_columns_follow_schema(self):
        frame = encode_frame([make_patient(), make_patient(id="P2", age=50)], "metformin")
        self.assertEqual(list(frame.columns), DOSAGE_FEATURES)
        self.assertEqual(len(frame), 2)

    def test_empty_input(self):
        frame = encode_frame([], None)
        self.assertEqual(list(frame.columns), DIAGNOSIS_FEATURES)
        self.assertTrue(frame.empty)


if __name__ == "__main__":
    unittest.main()

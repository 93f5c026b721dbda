import asyncio
import tempfile
import unittest
from pathlib import Path

from dosewise.model import DISEASE_KEY, DiseaseModel, ModelStore, dosage_key
from dosewise.predictors import LearnedPredictor, ModelRegistry, RuleBasedPredictor
from dosewise.schemas import PatientProfile
from dosewise.synthetic import generate_dataset, generate_patients


def small_dataset():
    return generate_dataset(60, seed=3)


def make_patient(**overrides):
    data = dict(id="P1", age=30, gender="male", weight=70, height=170)
    data.update(overrides)
    return PatientProfile(**data)


class ModelRegistryTests(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = ModelStore(Path(self._tmp.name))
        self.registries = []

    async def asyncTearDown(self):
        for registry in self.registries:
            registry.close()
        self._tmp.cleanup()

    def registry(self, **kwargs):
        kwargs.setdefault("dataset_factory", small_dataset)
        kwargs.setdefault("disease_patients_factory", lambda: generate_patients(40, seed=2))
        kwargs.setdefault("n_estimators", 5)
        registry = ModelRegistry(store=self.store, **kwargs)
        self.registries.append(registry)
        return registry

    async def test_concurrent_requests_train_once(self):
        registry = self.registry(auto_train=True)
        models = await asyncio.gather(*[registry.get_dosage_model("ibuprofen") for _ in range(6)])

        self.assertEqual(registry.training_runs, {dosage_key("ibuprofen"): 1})
        self.assertTrue(all(m is models[0] for m in models))
        self.assertTrue(self.store.exists(dosage_key("ibuprofen")))

    async def test_submit_after_cache_fill_returns_cached_model(self):
        registry = self.registry(auto_train=True)
        model = await registry.get_dosage_model("ibuprofen")

        future = registry._submit(dosage_key("ibuprofen"), lambda: self.fail("retrained"))
        self.assertTrue(future.done())
        self.assertIs(future.result(), model)
        self.assertEqual(registry.training_runs, {dosage_key("ibuprofen"): 1})

    async def test_saved_model_is_reused(self):
        first = self.registry(auto_train=True)
        await first.get_dosage_model("metformin")

        second = self.registry(auto_train=True)
        predictor = await second.predictor_for("metformin")
        self.assertIsInstance(predictor, LearnedPredictor)
        self.assertEqual(second.training_runs, {})

    async def test_falls_back_without_auto_train(self):
        registry = self.registry(auto_train=False)
        predictor = await registry.predictor_for("ibuprofen")

        self.assertIsInstance(predictor, RuleBasedPredictor)
        prediction = predictor.predict(make_patient(), "ibuprofen")
        self.assertEqual(prediction.dosage, 400)
        self.assertEqual(prediction.confidence, 0.7)
        self.assertEqual(prediction.source, "rule-based")

    async def test_falls_back_for_drug_without_records(self):
        registry = self.registry(auto_train=True)
        predictor = await registry.predictor_for("warfarin")
        self.assertIs(predictor, registry.fallback)

    async def test_failed_training_is_not_cached(self):
        def broken():
            raise RuntimeError("out of memory")

        registry = self.registry(auto_train=True, dataset_factory=broken)
        self.assertIsInstance(await registry.predictor_for("ibuprofen"), RuleBasedPredictor)
        self.assertIsNone(registry.cached(dosage_key("ibuprofen")))

    async def test_disease_model(self):
        registry = self.registry(auto_train=True)
        model = await registry.get_disease_model()
        self.assertIsInstance(model, DiseaseModel)
        self.assertIs(registry.cached(DISEASE_KEY), model)

    async def test_train_all(self):
        registry = self.registry(auto_train=False)
        summary = registry.train_all(drugs=["ibuprofen", "metformin"], disease=False)

        self.assertEqual(set(summary), {dosage_key("ibuprofen"), dosage_key("metformin")})
        self.assertIsInstance(await registry.predictor_for("ibuprofen"), LearnedPredictor)

        registry.reset()
        self.assertIsNone(registry.cached(dosage_key("ibuprofen")))


if __name__ == "__main__":
    unittest.main()

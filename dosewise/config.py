"""
config.py  —  All project settings in one place.
Change something here and it updates everywhere.
"""

import os
from pathlib import Path

# ── Folder layout ──────────────────────────────────────────────────────────────
BASE_DIR  = Path(__file__).parent
MODEL_DIR = Path(os.environ.get("DOSEWISE_MODEL_DIR", BASE_DIR / "models"))

MODEL_DIR.mkdir(parents=True, exist_ok=True)

# ── API server ─────────────────────────────────────────────────────────────────
API_HOST   = "0.0.0.0"
API_PORT   = 8000
API_RELOAD = True

LOG_LEVEL = os.environ.get("DOSEWISE_LOG_LEVEL", "INFO").upper()

# ── Synthetic training data ────────────────────────────────────────────────────
SYNTHETIC_PATIENT_COUNT = 1000     # dosage regressors
DISEASE_TRAINING_COUNT  = 5000     # disease classifier
RANDOM_SEED = int(os.environ["DOSEWISE_SEED"]) if "DOSEWISE_SEED" in os.environ else None

# ── Random forest hyperparameters ──────────────────────────────────────────────
N_ESTIMATORS     = 300
MAX_DEPTH        = 10
MIN_SAMPLES_LEAF = 3
RANDOM_STATE     = 42
TEST_SIZE        = 0.2
MIN_HOLDOUT_ROWS = 20       # below this we train on everything, no hold-out

# ── Dosage rules ───────────────────────────────────────────────────────────────
# Nominal adult dose (mg) before any patient-specific adjustment.
BASE_DOSAGES = {
    "ibuprofen":     400,
    "acetaminophen": 500,
    "amoxicillin":   250,
    "lisinopril":    10,
    "metformin":     500,
    "atorvastatin":  20,
    "levothyroxine": 100,
}
DEFAULT_BASE_DOSAGE = 100
REFERENCE_WEIGHT_KG = 70
DOSAGE_STEP_MG      = 5

# One canonical age rule: <18 → 0.7, >65 → 0.8, otherwise 1.0
PEDIATRIC_AGE_LIMIT  = 18
PEDIATRIC_AGE_FACTOR = 0.7
SENIOR_AGE_LIMIT     = 65
SENIOR_AGE_FACTOR    = 0.8

POOR_METABOLIZER_FACTOR  = 0.7
RAPID_METABOLIZER_FACTOR = 1.3
LIVER_DISEASE_FACTOR     = 0.7
KIDNEY_DISEASE_FACTOR    = 0.8

# Swaps offered next to the primary recommendation.
ALTERNATIVE_DRUGS = {
    "ibuprofen":     ["naproxen", "acetaminophen"],
    "acetaminophen": ["ibuprofen", "aspirin"],
    "amoxicillin":   ["azithromycin", "doxycycline"],
    "lisinopril":    ["losartan", "enalapril"],
    "metformin":     ["glipizide", "sitagliptin"],
    "atorvastatin":  ["simvastatin", "rosuvastatin"],
    "levothyroxine": ["liothyronine"],
}
ALTERNATIVE_BASE_DOSAGES = {
    "naproxen":      250,
    "acetaminophen": 500,
    "ibuprofen":     400,
    "aspirin":       325,
    "azithromycin":  250,
    "doxycycline":   100,
    "losartan":      50,
    "enalapril":     10,
    "glipizide":     5,
    "sitagliptin":   100,
    "simvastatin":   20,
    "rosuvastatin":  10,
    "liothyronine":  25,
}

# ── Recommendation assembly ────────────────────────────────────────────────────
FALLBACK_CONFIDENCE = 0.7     # rule-based dose, no trained model behind it
AUTO_TRAIN = os.environ.get("DOSEWISE_AUTO_TRAIN", "true").lower() == "true"

# ── Ledger simulation ──────────────────────────────────────────────────────────
LEDGER_SUBMIT_DELAY  = 1.0    # seconds
LEDGER_CONFIRM_DELAY = 2.0
LEDGER_VERIFY_DELAY  = 2.0
LEDGER_FAILURE_RATE  = 0.1
LEDGER_TIMEOUT       = 10.0

LEDGER_NETWORKS = {
    "mumbai": dict(name="Polygon Mumbai Testnet", chain_id=80001,
                   block_explorer="https://mumbai.polygonscan.com"),
    "goerli": dict(name="Ethereum Goerli Testnet", chain_id=5,
                   block_explorer="https://goerli.etherscan.io"),
}
DEFAULT_NETWORK = "mumbai"

"""
api.py  —  Flask web server
━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
Thin HTTP layer over RecommendationAssembler. Every response is
{"success": true, "data": ...} or {"success": false, "error": ...}.

Endpoints:
  GET  /api/health              — is the server up, which models are cached?
  GET  /api/drugs               — supported drugs + their alternatives
  POST /api/predict             — dosage recommendation  ← main one
  POST /api/diagnose            — disease diagnosis + diet / lifestyle plan
  GET  /api/predictions         — prediction history, newest first
  GET  /api/predictions/<id>    — one prediction
  POST /api/verify              — look a prediction hash up on the ledger
  POST /api/train               — retrain and save every model

Run with:  python -m dosewise.api
"""

import asyncio
import logging

from flask import Flask, jsonify, request
from flask_cors import CORS

from .assembler import RecommendationAssembler, build_service
from .config import ALTERNATIVE_DRUGS, API_HOST, API_PORT, API_RELOAD, LOG_LEVEL
from .errors import InputValidationError
from .model import DISEASE_KEY, dosage_key
from .schemas import to_json

logger = logging.getLogger(__name__)


# ── Helpers ───────────────────────────────────────────────────────
def ok(data):
    return jsonify({"success": True,  "data": data}), 200

def err(msg, code=400, details=None):
    body = {"success": False, "error": msg}
    if details:
        body["details"] = details
    return jsonify(body), code


def create_app(service: RecommendationAssembler = None) -> Flask:
    app = Flask(__name__)
    CORS(app)   # the browser frontend is served from another origin

    state = {"service": service}

    def svc() -> RecommendationAssembler:
        if state["service"] is None:
            state["service"] = build_service()
        return state["service"]

    @app.errorhandler(InputValidationError)
    def invalid_input(e):
        return err(str(e), 400, e.errors)

    # ── GET /api/health ───────────────────────────────────────────
    @app.route("/api/health", methods=["GET"])
    def health():
        registry = svc().registry
        cached = [d for d in registry.supported_drugs() if registry.cached(dosage_key(d))]
        return ok({
            "status": "ok",
            "auto_train": registry.auto_train,
            "cached_dosage_models": cached,
            "disease_model_cached": registry.cached(DISEASE_KEY) is not None,
            "predictions": len(svc().history),
        })

    # ── GET /api/drugs ────────────────────────────────────────────
    @app.route("/api/drugs", methods=["GET"])
    def drugs():
        names = svc().registry.supported_drugs()
        return ok({
            "drugs": names,
            "alternatives": {d: ALTERNATIVE_DRUGS.get(d, []) for d in names},
        })

    # ── POST /api/predict ─────────────────────────────────────────
    # Body: {"drug": "ibuprofen", "patient": {...PatientProfile...}}
    @app.route("/api/predict", methods=["POST"])
    def predict():
        body = request.get_json(silent=True) or {}
        if "drug" not in body:
            return err("Missing required field: 'drug'")
        if not isinstance(body.get("patient"), dict):
            return err("Missing required field: 'patient'")

        result = asyncio.run(svc().assemble_dosage(body["patient"], body["drug"]))
        data = to_json(result)
        if result.blockchain_tx_hash and not result.blockchain_tx_hash.startswith("local-"):
            data["explorer_url"] = svc().ledger.explorer_url(result.blockchain_tx_hash)
        return ok(data)

    # ── POST /api/diagnose ────────────────────────────────────────
    # Body: {"patient": {...}, "use_model": false}
    @app.route("/api/diagnose", methods=["POST"])
    def diagnose():
        body = request.get_json(silent=True) or {}
        if not isinstance(body.get("patient"), dict):
            return err("Missing required field: 'patient'")
        use_model = bool(body.get("use_model", False))
        result = asyncio.run(svc().assemble_diagnosis(body["patient"], use_model=use_model))
        return ok(to_json(result))

    # ── GET /api/predictions ──────────────────────────────────────
    @app.route("/api/predictions", methods=["GET"])
    def predictions():
        patient_id = request.args.get("patient_id")
        history = svc().history
        items = history.for_patient(patient_id) if patient_id else history.all()
        return ok({"predictions": [to_json(r) for r in items]})

    @app.route("/api/predictions/<prediction_id>", methods=["GET"])
    def prediction(prediction_id):
        result = svc().history.get(prediction_id)
        if result is None:
            return err(f"Prediction '{prediction_id}' not found", 404)
        return ok(to_json(result))

    # ── POST /api/verify ──────────────────────────────────────────
    @app.route("/api/verify", methods=["POST"])
    def verify():
        body = request.get_json(silent=True) or {}
        prediction_hash = body.get("hash")
        if not prediction_hash:
            return err("Missing required field: 'hash'")
        return ok(to_json(asyncio.run(svc().verify(prediction_hash))))

    # ── POST /api/train ───────────────────────────────────────────
    @app.route("/api/train", methods=["POST"])
    def train_route():
        body = request.get_json(silent=True) or {}
        try:
            summary = svc().registry.train_all(
                drugs=body.get("drugs"),
                disease=bool(body.get("disease", True)),
            )
        except Exception as e:
            logger.exception("Training failed")
            return err(f"Training failed: {e}", 500)
        return ok({"message": "Models retrained successfully ✓", "models": summary})

    return app


# ── Start server ──────────────────────────────────────────────────
if __name__ == "__main__":
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    print("\n" + "="*50)
    print("  DoseWise API  —  http://localhost:" + str(API_PORT))
    print("="*50 + "\n")
    create_app().run(host=API_HOST, port=API_PORT, debug=API_RELOAD)

"""
VERA Flask API

- POST /api/vera           one conversational turn (response envelope)
- POST /api/vera/consent   explicit consent changes
- POST /api/vera/decision  structured decision analysis
- POST /api/voice          text-to-speech (honors consent.voice_output)
- GET  /api/health         gateway / voice / storage status

Errors are always JSON: {"success": false, "error": "...", "message": "..."}
"""

import sys
import traceback
from pathlib import Path

# -----------------------------------------------------------------------------
# Path Setup: must happen BEFORE any other imports
# -----------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))


# -----------------------------------------------------------------------------
# Environment Loading: must happen BEFORE importing modules that use API keys
# -----------------------------------------------------------------------------

from system.config import Config, load_env_file

load_env_file(BASE_DIR)


from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from backend.llm_client import LLMGateway
from core.session_engine import SessionEngine
from kernel.profile_store import ProfileStore, ProfileStoreError
from kernel.utils import get_kv_store
from modules.decision_module import analyze_decision
from providers.gemini_client import get_gemini_status
from providers.voice_client import VoiceClient, VoiceError


def _error(code: str, message: str, status: int):
    return jsonify({"success": False, "error": code, "message": message}), status


def _json_body():
    """Request body as a dict, or None when it isn't a JSON object."""
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else None


def create_app(
    config: Config = None,
    gateway: LLMGateway = None,
    profile_store: ProfileStore = None,
    engine: SessionEngine = None,
    voice_client: VoiceClient = None,
) -> Flask:
    """Build the Flask app. Collaborators default to env-configured instances."""
    config = config or Config.load(BASE_DIR / "data")
    gateway = gateway or LLMGateway.from_config(config)
    profile_store = profile_store or ProfileStore(get_kv_store(), config)
    engine = engine or SessionEngine(gateway, profile_store, config)
    voice_client = voice_client or VoiceClient()

    app = Flask(__name__)

    # ─────────────────────────────────────────────────────────────────────────
    # GLOBAL ERROR HANDLERS (JSON, never HTML)
    # ─────────────────────────────────────────────────────────────────────────

    @app.errorhandler(404)
    def handle_404(e):
        return _error("not_found", f"Endpoint not found: {request.path}", 404)

    @app.errorhandler(405)
    def handle_405(e):
        return _error("method_not_allowed", f"{request.method} not allowed on {request.path}", 405)

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return _error(e.name.lower().replace(" ", "_"), e.description or e.name, e.code or 500)
        print(f"[VeraAPI] Unhandled exception: {type(e).__name__}: {e}", file=sys.stderr, flush=True)
        traceback.print_exc()
        return _error("server_error", f"An unexpected server error occurred: {e}", 500)

    # ─────────────────────────────────────────────────────────────────────────
    # ROUTES
    # ─────────────────────────────────────────────────────────────────────────

    @app.post("/api/vera")
    def vera_endpoint():
        """
        Body: {"message": "...", "user_id": "...", "session_id": "...",
               "energy": "low", "biometrics": {...}}
        """
        data = _json_body()
        if data is None:
            return _error("invalid_json", "Request body must be a JSON object", 400)

        message = data.get("message")
        if not isinstance(message, str):
            return _error("no_message", "Field 'message' (string) is required", 400)

        context = {
            k: data[k]
            for k in ("user_id", "session_id", "energy", "biometrics", "name", "now")
            if data.get(k) is not None
        }
        envelope = engine.handle(message, context)
        return jsonify(envelope), (200 if envelope.get("success") else 500)

    @app.post("/api/vera/consent")
    def consent_endpoint():
        """Body: {"user_id": "...", "consent": {"voice_output": false, ...}}"""
        data = _json_body()
        if data is None:
            return _error("invalid_json", "Request body must be a JSON object", 400)

        user_id = data.get("user_id")
        changes = data.get("consent")
        if not user_id or not isinstance(changes, dict) or not changes:
            return _error("invalid_consent", "Fields 'user_id' and 'consent' (object) are required", 400)

        try:
            profile = profile_store.update_consent(str(user_id), changes)
        except ProfileStoreError as e:
            return _error("invalid_consent", str(e), 400)

        return jsonify({"success": True, "user_id": profile.user_id, "consent": profile.consent.to_dict()})

    @app.post("/api/vera/decision")
    def decision_endpoint():
        """Body: {"decision": "...", "energy": "low", "biometrics": {...}}"""
        data = _json_body()
        if data is None:
            return _error("invalid_json", "Request body must be a JSON object", 400)

        decision = data.get("decision")
        if not isinstance(decision, str) or not decision.strip():
            return _error("no_decision", "Field 'decision' (string) is required", 400)

        analysis = analyze_decision(
            decision,
            gateway=gateway,
            energy=data.get("energy"),
            biometrics=data.get("biometrics"),
        )
        return jsonify({"success": True, "analysis": analysis.to_dict()})

    @app.post("/api/voice")
    def voice_endpoint():
        """Body: {"text": "...", "voice_style": "calm", "speed": 1.0, "user_id": "..."}"""
        data = _json_body()
        if data is None:
            return _error("invalid_json", "Request body must be a JSON object", 400)

        text = data.get("text")
        if not isinstance(text, str) or not text.strip():
            return _error("no_text", "Field 'text' (string) is required", 400)

        user_id = data.get("user_id")
        if user_id:
            profile = profile_store.get_or_create(str(user_id))
            if not profile.consent.voice_output:
                return _error("voice_not_consented", "Voice output is turned off for this user", 403)

        try:
            speed = float(data.get("speed", 1.0))
        except (TypeError, ValueError):
            return _error("invalid_speed", "Field 'speed' must be a number", 400)

        try:
            audio = voice_client.synthesize(text, voice_style=data.get("voice_style", "calm"), speed=speed)
        except VoiceError as e:
            print(f"[VeraAPI] voice error: {e}", file=sys.stderr, flush=True)
            return _error("voice_error", str(e), e.status_code)

        return Response(audio, mimetype="audio/mpeg", headers={"Cache-Control": "no-cache"})

    @app.get("/api/health")
    def health_endpoint():
        return jsonify({
            "success": True,
            "status": "ok",
            "gateway": gateway.status(),
            "gemini": get_gemini_status(),
            "voice": voice_client.status(),
            "sessions": len(engine.registry),
            "tone": engine.tone.get_stats(),
        })

    app.extensions["vera"] = {
        "config": config,
        "gateway": gateway,
        "profile_store": profile_store,
        "engine": engine,
        "voice": voice_client,
    }
    return app


if __name__ == "__main__":
    app = create_app()
    print("[VeraAPI] Starting server...", flush=True)
    print(f"[VeraAPI] Base directory: {BASE_DIR}", flush=True)
    app.run(host="0.0.0.0", port=5000, debug=False)

from datetime import datetime
from system.config import Config


class KernelLogger:
    def __init__(self, config: Config):
        self.config = config
        self.log_file = config.data_dir / "vera.log"

    def log_input(self, session_id: str, text: str):
        # Message bodies can carry crisis content; only the length is written.
        self._write(f"[INPUT] [{session_id}] chars={len(text or '')}")

    def log_response(self, session_id: str, mode: str, response: dict):
        meta = response.get("metadata", {})
        self._write(
            f"[RESPONSE] [{session_id}] mode={mode} ok={response.get('success')} "
            f"fallback={meta.get('used_fallback')} ms={meta.get('response_time_ms')}"
        )

    def log_exception(self, session_id: str, stage: str, exc: Exception):
        self._write(f"[EXCEPTION] [{session_id}] stage={stage} {exc!r}")

    def _write(self, line: str):
        ts = datetime.now().isoformat()
        try:
            self.config.data_dir.mkdir(parents=True, exist_ok=True)
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(f"{ts} {line}\n")
        except OSError as e:
            print(f"[KernelLogger] write failed: {e}", flush=True)

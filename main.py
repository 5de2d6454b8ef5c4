# main.py
"""
VERA Terminal Entry Point

Talk to VERA from a terminal. One session per run.

    python main.py [user_id]

Type "exit" or "quit" to leave.
"""

import sys
import uuid

from system.config import Config, load_env_file


def main():
    load_env_file()

    from backend.llm_client import LLMGateway
    from core.session_engine import SessionEngine
    from kernel.profile_store import ProfileStore
    from kernel.utils import get_kv_store

    config = Config.load()
    gateway = LLMGateway.from_config(config)
    engine = SessionEngine(gateway, ProfileStore(get_kv_store(), config), config)

    user_id = sys.argv[1] if len(sys.argv) > 1 else "local"
    session_id = f"cli-{uuid.uuid4().hex[:8]}"
    print(f"VERA is here. (session {session_id}, type 'exit' to leave)\n")

    while True:
        try:
            message = input("you > ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if message.lower() in ("exit", "quit"):
            break

        envelope = engine.handle(message, {"user_id": user_id, "session_id": session_id})
        print(f"\nvera [{envelope.get('mode', '?')}] > {envelope['response']}\n")


if __name__ == "__main__":
    main()

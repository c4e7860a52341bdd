# src/taskwise/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..assistant.chat import create_thread, stream_message
from ..cli.commands import registry as command_registry
from ..core.errors import TaskwiseError
from ..core.state import AppState
from ..llm.client import friendly_llm_error_message

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _ask_assistant(state: AppState, user_id: str, text: str, app_name: str) -> None:
    if state.active_thread_id is None:
        state.active_thread_id = create_thread(state, user_id, title=text[:60])
        _print_ts(f"[CHAT] Started thread #{state.active_thread_id}.")

    assistant_printed = False
    for piece in stream_message(state, user_id, state.active_thread_id, text):
        if not assistant_printed:
            print(f"[{_ts_local()}] <<< {app_name}: ", end="", flush=True)
            assistant_printed = True
        print(piece, end="", flush=True)

    if not assistant_printed:
        _print_ts("[LLM] No output (model produced no content).")
        return
    print("\n")


def run_console_loop(state: AppState) -> None:
    user_id = str(getattr(state.settings, "user_id", "local"))
    app_name = str(getattr(state.settings, "app_name", "taskwise"))

    logger.info("Console connector started (user=%s).", user_id)
    _print_ts("[CONSOLE] Manage tasks with /commands, anything else goes to the assistant.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> You: ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        # Commands (/help, /tasks, ...)
        try:
            with state.lock:
                cmd_response = command_registry.handle(state, user_input, user_id=user_id, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        try:
            with state.lock:
                _ask_assistant(state, user_id, user_input, app_name)
        except TaskwiseError as e:
            _print_ts(f"Error: {e}")
        except RuntimeError as e:
            msg = friendly_llm_error_message(e)
            logger.info("LLM runtime error: %s", msg)
            _print_ts(f"[LLM] {msg}")
        except Exception:
            logger.exception("Console chat handler crashed.")
            _print_ts("Internal error while generating a reply.")

    logger.info("Console connector finished.")

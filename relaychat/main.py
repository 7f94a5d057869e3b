"""relaychat entry point.

By default the relay and the chat page share one server: NiceGUI is mounted on
the FastAPI app. ``RUN_MODE=separate`` starts them as two processes, the relay
on ``PORT`` and the UI on ``UI_PORT``, with the UI pointed at the relay through
``API_BASE_URL``. Environment variables are loaded from .env.
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
UI_PORT = int(os.getenv("UI_PORT", "8080"))


def run_integrated() -> None:
    """Serve the relay and the chat page from a single uvicorn server."""
    import uvicorn
    from nicegui import ui

    from relaychat.api.app import create_app
    from relaychat.ui.chat_page import chat_page  # noqa: F401 - Registers the page

    app = create_app()
    ui.run_with(
        app,
        title="relaychat",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "relaychat-secret"),
    )

    logger.info(f"Chat UI on http://localhost:{PORT}/, relay docs on http://localhost:{PORT}/docs")
    uvicorn.run(app, host=HOST, port=PORT, log_level=os.getenv("LOG_LEVEL", "info").lower())


async def _run_processes() -> int:
    env = {**os.environ, "API_BASE_URL": os.getenv("API_BASE_URL", f"http://localhost:{PORT}")}
    commands = {
        "relay": [
            sys.executable, "-m", "uvicorn", "relaychat.api.app:app",
            "--host", HOST, "--port", str(PORT),
        ],
        "ui": [sys.executable, "-c", "from relaychat.ui.chat_page import main; main()"],
    }
    procs = {
        name: await asyncio.create_subprocess_exec(*cmd, env=env) for name, cmd in commands.items()
    }
    waiters = {asyncio.create_task(proc.wait()): name for name, proc in procs.items()}

    code = 0
    try:
        done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            code = code or task.result()
            logger.warning(f"{waiters[task]} process exited with code {task.result()}")
    finally:
        for proc in procs.values():
            if proc.returncode is None:
                proc.terminate()
        await asyncio.gather(*(proc.wait() for proc in procs.values()))
    return code


def run_separate() -> None:
    """Run the relay and the NiceGUI page as two processes until one exits."""
    logger.info(f"Relay on http://localhost:{PORT}, chat UI on http://localhost:{UI_PORT}")
    try:
        code = asyncio.run(_run_processes())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return
    sys.exit(code)


def main() -> None:
    """Application entry point."""
    mode = os.getenv("RUN_MODE", "integrated").lower()
    logger.info(f"Starting relaychat in {mode} mode")

    if mode == "separate":
        run_separate()
    else:
        run_integrated()


if __name__ == "__main__":
    main()

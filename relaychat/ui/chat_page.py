"""NiceGUI chat interface on top of the streaming chat client."""

import os
from datetime import datetime

import httpx
from nicegui import app, ui

from relaychat.client.auth import login
from relaychat.client.config import ClientConfig, get_client_config
from relaychat.client.conversation import Conversation
from relaychat.client.errors import AuthError, TransportError
from relaychat.client.storage import CredentialStore, LayeredStore, MappingStore
from relaychat.models.schemas import Message, Role

CUSTOM_CSS = """
<style>
    body { background: #f4f6fb; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.08);
        overflow: hidden;
    }

    .header { background: linear-gradient(135deg, #00b4d8 0%, #0072ff 100%); }

    .message-user {
        background: #0072ff;
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-assistant {
        background: #eef1f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }

    .typing-dot {
        width: 8px; height: 8px;
        background: #0072ff;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }

    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }

    .message-assistant pre { margin: 0.5rem 0; overflow-x: auto; }
</style>
"""

_http_client: httpx.AsyncClient | None = None


def get_http_client(config: ClientConfig) -> httpx.AsyncClient:
    """Shared HTTP client for all browser tabs served by this process."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=config.request_timeout)
        )
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


app.on_shutdown(close_http_client)


def format_time(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%I:%M %p")


def render_login(credentials: CredentialStore, config: ClientConfig) -> None:
    """Password gate shown until a credential is stored."""

    async def submit() -> None:
        if not password.value:
            return
        sign_in.disable()
        try:
            await login(
                get_http_client(config),
                config.api_base_url,
                password.value,
                credentials,
                persist=remember.value,
            )
        except AuthError:
            ui.notify("Invalid password", type="negative")
            return
        except TransportError as e:
            ui.notify(str(e), type="negative")
            return
        finally:
            sign_in.enable()
        ui.navigate.reload()

    with ui.column().classes("w-full min-h-screen items-center justify-center"):
        with ui.card().classes("w-80 gap-4 p-6"):
            ui.label("relaychat").classes("text-xl font-semibold")
            password = (
                ui.input("Password", password=True, password_toggle_button=True)
                .classes("w-full")
                .on("keydown.enter", submit)
            )
            remember = ui.checkbox("Remember me")
            sign_in = ui.button("Sign in", on_click=submit).classes("w-full")


def render_chat(conversation: Conversation, credentials: CredentialStore) -> None:
    """Main chat layout bound to a conversation."""
    messages_container: ui.column
    input_field: ui.textarea
    send_btn: ui.button
    stop_btn: ui.button
    retry_btn: ui.button

    def render_message(msg: Message) -> None:
        is_user = msg.role is Role.USER
        align = "justify-end" if is_user else "justify-start"
        bubble = "message-user" if is_user else "message-assistant"

        with ui.row().classes(f"w-full {align}"):
            with ui.column().classes("max-w-[75%] gap-1"):
                with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                    if not is_user and not msg.content and conversation.is_generating:
                        with ui.row().classes("gap-1 py-1"):
                            for _ in range(3):
                                ui.element("div").classes("typing-dot")
                    elif is_user:
                        ui.label(msg.content).classes("text-sm whitespace-pre-wrap")
                    else:
                        ui.markdown(msg.content).classes("text-sm leading-relaxed")
                ui.label(format_time(msg.timestamp)).classes(
                    f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
                )

    def refresh_messages() -> None:
        messages_container.clear()
        with messages_container:
            if not conversation.messages:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    ui.icon("forum").classes("text-5xl text-gray-300")
                    ui.label("Start a conversation").classes("text-lg text-gray-400")
            else:
                for msg in conversation.messages:
                    render_message(msg)

    def update_controls() -> None:
        send_btn.set_visibility(not conversation.is_generating)
        stop_btn.set_visibility(conversation.is_generating)
        retry_btn.set_enabled(not conversation.is_generating and bool(conversation.messages))

    async def send_message() -> None:
        text = input_field.value.strip()
        if not text or conversation.is_generating:
            return
        input_field.value = ""
        await conversation.send(text)

    def stop_generation() -> None:
        conversation.cancel()

    async def retry_last() -> None:
        await conversation.retry()

    async def clear_chat() -> None:
        with ui.dialog() as dialog, ui.card():
            ui.label("Clear the whole conversation?")
            with ui.row():
                ui.button("Cancel", on_click=lambda: dialog.submit(False)).props("flat")
                ui.button("Clear", on_click=lambda: dialog.submit(True)).props("color=negative")
        if await dialog:
            conversation.clear()

    def logout() -> None:
        conversation.cancel()
        credentials.clear()
        ui.navigate.reload()

    # === UI Layout ===
    with (
        ui.element("div").classes("w-full min-h-screen p-4 md:p-8"),
        ui.column().classes("w-full max-w-3xl mx-auto app-container").style(
            "height: calc(100vh - 4rem)"
        ),
    ):
        # Header
        with ui.row().classes("w-full header px-5 py-4 items-center justify-between"):
            with ui.row().classes("items-center gap-3"):
                ui.icon("hub").classes("text-white text-3xl")
                ui.label("relaychat").classes("text-lg font-semibold text-white")
            with ui.row().classes("items-center gap-1"):
                ui.switch("Web search").bind_value(conversation, "search_enabled").props(
                    "color=white dark"
                ).classes("text-white")
                retry_btn = ui.button(icon="refresh", on_click=retry_last).props(
                    "flat round color=white"
                )
                ui.button(icon="delete_sweep", on_click=clear_chat).props("flat round color=white")
                ui.button(icon="logout", on_click=logout).props("flat round color=white")

        # Messages
        with (
            ui.scroll_area().classes("flex-grow w-full bg-gray-50"),
            ui.column().classes("w-full p-5"),
        ):
            messages_container = ui.column().classes("w-full gap-4")
            refresh_messages()

        # Input
        with ui.row().classes("w-full p-4 gap-3 items-end bg-white border-t"):
            input_field = (
                ui.textarea(placeholder="Type a message...")
                .props("autogrow borderless dense rows=1")
                .classes("flex-grow")
                .on("keydown.enter.prevent", send_message)
            )
            send_btn = ui.button(icon="send", on_click=send_message).props("round unelevated")
            stop_btn = ui.button(icon="stop", on_click=stop_generation).props(
                "round unelevated color=negative"
            )

    conversation.add_listener(refresh_messages)
    conversation.add_listener(update_controls)
    update_controls()


@ui.page("/")
async def chat_page() -> None:
    """Main chat page; shows the login form until a credential is stored."""
    ui.add_head_html(CUSTOM_CSS)
    # Tab storage is only available once the websocket is connected
    await ui.context.client.connected()

    config = get_client_config()
    store = LayeredStore(MappingStore(app.storage.tab), MappingStore(app.storage.user))
    credentials = CredentialStore(store)

    if credentials.token is None:
        render_login(credentials, config)
        return

    conversation = Conversation(
        get_http_client(config),
        credentials,
        store=store.persistent,
        config=config,
        on_logout=ui.navigate.reload,
    )
    ui.context.client.on_disconnect(conversation.flush)
    render_chat(conversation, credentials)


def main() -> None:
    ui.run(
        title="relaychat",
        port=int(os.getenv("UI_PORT", "8080")),
        reload=False,
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "relaychat-secret"),
    )


if __name__ == "__main__":
    main()

"""NiceGUI interface - thin visualization layer for chat interactions.

Delivers a responsive web UI that follows the streaming transcript.

Responsibilities:
    - Password gate with "remember me"
    - Chat message display with streaming and stop support
    - Web search toggle and clear-conversation action

Contains minimal business logic. Delegates all operations to the chat client.
Remains a pure presentation layer.
"""

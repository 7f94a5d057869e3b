"""Test package for relaychat.

Unit tests cover isolated protocol and client logic; integration tests drive
the FastAPI relay over ASGI, alone and together with the streaming client.

Structure:
    - unit/: Individual function and class tests
    - integration/: End-to-end workflow tests

Model calls are replaced by a scripted fake service, so no API key is needed.
Leverages pytest with pytest-check for soft assertions.
"""

"""Integration tests for components working together as a system.

Coverage:
    - Relay endpoint streaming, error mapping and credential checks
    - Password login endpoint
    - Streaming client talking to the real relay app over ASGI

The model provider is replaced by a scripted fake service.
"""

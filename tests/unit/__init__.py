"""Unit tests for individual components in isolation.

Ensures fast execution with minimal dependencies.

Coverage:
    - protocol/: Frame decoding, event interpretation, error classification
    - client/: Render throttle, generation session, conversation, storage
    - agent/: Model configuration and message conversion
    - api/: Credential tokens

Byte streams are served by httpx.MockTransport so chunk boundaries are exact.
"""

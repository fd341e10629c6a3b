"""
Test suite for real-time change notifications.

- Hub protocol framing and handshake parsing
- SubscriptionManager dispatch, listener isolation and channel lifecycle
"""

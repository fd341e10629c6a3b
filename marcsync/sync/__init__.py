"""
Real-time change notifications.

Key Components:
- SubscriptionManager: single hub connection with per-event listener lists
- ChannelState: lifecycle of that connection
- protocol: SignalR JSON hub framing
"""

from .protocol import HubMessageType, HubProtocolError
from .subscriptions import ChannelState, SubscriptionManager

__all__ = [
    "ChannelState",
    "SubscriptionManager",
    "HubMessageType",
    "HubProtocolError",
]

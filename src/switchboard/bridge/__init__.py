"""
Context bridging between voice and text.
"""

from switchboard.bridge.context_bridge import BridgeDirection, ContextBridge

__all__ = ["BridgeDirection", "ContextBridge"]

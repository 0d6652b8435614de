"""
Modality handling — classify inbound turns as voice or text and shape
outbound replies for the channel they will be delivered on.
"""

from switchboard.modality.router import ModalityRouter

__all__ = ["ModalityRouter"]

from .commands import CommandHandlers
from .confirmations import ConfirmationFlow

__all__ = ["CommandHandlers", "ConfirmationFlow"]

"""
Session Module
==============

One scroll-capture session from region selection to the stitched image.

Components:
    - SessionController: State machine driving detector, finder and compositor
    - CancellationToken: Single-assignment cancellation signal
"""

from scrollstitch.session.cancellation import CancellationToken
from scrollstitch.session.controller import SessionController, SessionEvent


__all__ = [
    "CancellationToken",
    "SessionController",
    "SessionEvent",
]

"""Rooms module: pins, read receipts, invitations and direct conversations."""

from .conversations import ConversationDirectory, ConversationSummary
from .invitations import Invitation, InvitationInbox
from .pins import PinBoard, PinnedMessage
from .receipts import ReadReceipts, ReceiptStatus, receipt_status, reads_table

__all__ = [
    "ConversationDirectory",
    "ConversationSummary",
    "Invitation",
    "InvitationInbox",
    "PinBoard",
    "PinnedMessage",
    "ReadReceipts",
    "ReceiptStatus",
    "reads_table",
    "receipt_status",
]

from spliteasy.models.user import User
from spliteasy.models.friend import Friend
from spliteasy.models.receipt import Receipt, ReceiptItem, Participant, Assignment

__all__ = [
    "User", "Friend",
    "Receipt", "ReceiptItem", "Participant", "Assignment",
]

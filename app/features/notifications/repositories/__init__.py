"""Notifications feature repositories"""
from .tickets import TicketRepository, TicketResponseRepository
from .merchants import MerchantRepository

__all__ = ["TicketRepository", "TicketResponseRepository", "MerchantRepository"]

"""Wallet and transaction storage"""

from .database import Database
from .gateway import PersistenceGateway
from .models import Base, WalletModel, WalletTransactionModel

__all__ = ["Database", "PersistenceGateway", "Base", "WalletModel", "WalletTransactionModel"]

from dkpapi.models.base import Base
from dkpapi.models.loot import ItemRarity, LootHistory
from dkpapi.models.loot_system import LootSystem, LootSystemType
from dkpapi.models.points import DKPPoints, DKPTransaction, LedgerEntryType

__all__ = [
    "Base",
    "ItemRarity",
    "LootHistory",
    "LootSystem",
    "LootSystemType",
    "DKPPoints",
    "DKPTransaction",
    "LedgerEntryType",
]

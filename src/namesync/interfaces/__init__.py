"""Protocol interfaces for all namesync components."""

from namesync.interfaces.ledger import Ledger
from namesync.interfaces.extractor import Extractor
from namesync.interfaces.store import NameStore

__all__ = ["Ledger", "Extractor", "NameStore"]

"""Ledger access over namecoind, with script decoding and tip notification."""

from namesync.ledger.notifier import TipNotifier
from namesync.ledger.node import NamecoindLedger
from namesync.ledger.script import decode_name_script, extract_name_operations

__all__ = ["TipNotifier", "NamecoindLedger", "decode_name_script", "extract_name_operations"]

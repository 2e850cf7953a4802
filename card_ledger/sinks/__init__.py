"""Output sinks for exporting ledger data and publishing events."""

from card_ledger.sinks.json_file import JsonFileSink
from card_ledger.sinks.serialization import serialize_value, to_dict, to_json, to_records

__all__ = ["JsonFileSink", "serialize_value", "to_dict", "to_json", "to_records"]

# query_gateway/query/catalog.py
"""
Record catalog: logical record types, their physical tables and aliases.

The catalog is an immutable object built once at startup and injected into
the QueryBuilder, so tests can substitute a fixture catalog.
"""

from collections import Counter
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, FrozenSet, Iterable, List, Optional, Tuple

from .errors import UnsupportedRecordType
from .identifiers import safe_identifier

FALLBACK_ALIAS = "t"


@dataclass(frozen=True)
class ImplicitFilter:
    """Equality filter added to every query on a record type unless the caller filters that field."""

    field_name: str
    value: Any


@dataclass(frozen=True)
class CatalogEntry:
    """Physical mapping for one logical record type."""

    record_type: str
    base_table: str
    is_line_record: bool = False
    header_table: Optional[str] = None
    header_alias: Optional[str] = None
    foreign_key_field: Optional[str] = None
    header_only_fields: FrozenSet[str] = frozenset()
    implicit_filters: Tuple[ImplicitFilter, ...] = ()

    def __post_init__(self):
        safe_identifier(self.record_type, "record type")
        safe_identifier(self.base_table, "base table")
        if self.is_line_record:
            if not (self.header_table and self.header_alias and self.foreign_key_field):
                raise ValueError(
                    f"Line record type '{self.record_type}' needs header_table, header_alias and foreign_key_field"
                )
            safe_identifier(self.header_table, "header table")
            safe_identifier(self.header_alias, "header alias")
            safe_identifier(self.foreign_key_field, "foreign key field")
        # Membership tests compare lower-cased field names
        object.__setattr__(
            self, "header_only_fields", frozenset(name.lower() for name in self.header_only_fields)
        )

    def is_header_field(self, field_name: str) -> bool:
        return self.is_line_record and field_name.lower() in self.header_only_fields


class RecordCatalog:
    """Case-insensitive lookup from record type to CatalogEntry, plus alias generation."""

    def __init__(self, entries: Iterable[CatalogEntry]):
        mapping = {}
        for entry in entries:
            key = entry.record_type.lower()
            if key in mapping:
                raise ValueError(f"Duplicate record type in catalog: {key}")
            mapping[key] = entry
        self._entries = MappingProxyType(mapping)

        # Leading letters shared by two or more record types get longer aliases
        letter_counts = Counter(key[0] for key in mapping)
        self._conflict_letters = frozenset(letter for letter, count in letter_counts.items() if count > 1)

        for entry in mapping.values():
            if entry.is_line_record and entry.header_alias == self.alias(entry.record_type):
                raise ValueError(
                    f"Header alias '{entry.header_alias}' collides with the alias of '{entry.record_type}'"
                )

    @property
    def conflict_letters(self) -> FrozenSet[str]:
        return self._conflict_letters

    def resolve(self, record_type: Any) -> CatalogEntry:
        """Look up a record type; unknown types raise UnsupportedRecordType."""
        key = str(record_type or "").strip().lower()
        entry = self._entries.get(key)
        if entry is None:
            raise UnsupportedRecordType(f"Unsupported recordType: {record_type}")
        return entry

    def alias(self, record_type: Any) -> str:
        """
        Deterministic table alias for a record type.

        The first letter of the key, or its first three characters (two for
        shorter keys) when that letter starts more than one record type.
        Unknown keys fall back to a single-letter alias.
        """
        key = str(record_type or "").strip().lower()
        if key not in self._entries:
            return FALLBACK_ALIAS
        alias = key[0]
        if alias in self._conflict_letters:
            alias = key[:3] if len(key) >= 3 else key[:2]
        return alias

    def record_types(self) -> List[str]:
        return sorted(self._entries)

    def __contains__(self, record_type: Any) -> bool:
        return str(record_type or "").strip().lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# ===== DEFAULT CATALOG =====

_SIMPLE_RECORD_TABLES = {
    # Transactions (header) and revenue management
    "transaction": "transaction",
    "revenuearrangement": "revenuearrangement",
    "revenueelement": "revenueelement",
    "revenueplanstatus": "revenueplanstatus",
    "revenueplan": "revenueplan",
    # Entities
    "customer": "customer",
    "vendor": "vendor",
    "employee": "employee",
    "contact": "contact",
    "partner": "partner",
    "job": "job",
    "entitygroup": "entitygroup",
    "competitor": "competitor",
    # Items (every subtype lives in the item table)
    "item": "item",
    "inventoryitem": "item",
    "noninventoryitem": "item",
    "serviceitem": "item",
    "assemblyitem": "item",
    "kititem": "item",
    "downloaditem": "item",
    "giftcertificateitem": "item",
    "discountitem": "item",
    "markupitem": "item",
    "paymentitem": "item",
    "subtotalitem": "item",
    "expenseitem": "item",
    "descriptionitem": "item",
    "otherchargeitem": "item",
    # Lists & setup
    "account": "account",
    "accountingperiod": "accountingperiod",
    "bin": "bin",
    "location": "location",
    "department": "department",
    "classification": "classification",
    "currency": "currency",
    "subsidiary": "subsidiary",
    "customlist": "customlist",
    "budget": "budget",
    "campaign": "campaign",
    "file": "file",
    "folder": "folder",
    # Activities
    "calendarevent": "calendarevent",
    "task": "task",
    "phonecall": "phonecall",
    "message": "message",
    "note": "note",
    # Support & CRM
    "supportcase": "supportcase",
    "issue": "issue",
    "solution": "solution",
    "topic": "topic",
    "campaignresponse": "campaignresponse",
}


def _default_entries() -> List[CatalogEntry]:
    entries = [CatalogEntry(record_type=key, base_table=table) for key, table in _SIMPLE_RECORD_TABLES.items()]

    # Leads and prospects are customer rows at a given stage
    entries.append(
        CatalogEntry(
            record_type="lead",
            base_table="customer",
            implicit_filters=(ImplicitFilter("stage", "LEAD"),),
        )
    )
    entries.append(
        CatalogEntry(
            record_type="prospect",
            base_table="customer",
            implicit_filters=(ImplicitFilter("stage", "PROSPECT"),),
        )
    )

    # Line tables filtered in the context of their owning header row
    entries.append(
        CatalogEntry(
            record_type="transactionline",
            base_table="transactionline",
            is_line_record=True,
            header_table="transaction",
            header_alias="th",
            foreign_key_field="transaction",
            header_only_fields=frozenset(
                {"type", "trandate", "tranid", "entity", "postingperiod", "subsidiary", "currency"}
            ),
        )
    )
    entries.append(
        CatalogEntry(
            record_type="revenueplanplannedrevenue",
            base_table="revenueplanplannedrevenue",
            is_line_record=True,
            header_table="revenueplan",
            header_alias="rp",
            foreign_key_field="revenueplan",
            header_only_fields=frozenset(
                {
                    "recordnumber",
                    "createdfrom",
                    "revrecstartdate",
                    "revrecenddate",
                    "revenueplancurrency",
                    "amount",
                    "exchangerate",
                    "revenueplantype",
                    "lastmodifieddate",
                    "entity",
                    "subsidiary",
                    "currency",
                }
            ),
        )
    )
    return entries


@lru_cache(maxsize=1)
def default_catalog() -> RecordCatalog:
    """The curated production catalog, built once per process."""
    return RecordCatalog(_default_entries())

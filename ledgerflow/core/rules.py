"""
Category Rule Store

Per-user learned categorization overrides, keyed by
(user_id, entity_name_normalized). Stores serialize their writes with a
lock so the key stays unique and `times_applied` never loses an increment.
"""
import json
import os
import re
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ledgerflow.common.logging_config import get_logger
from ledgerflow.common.models import CategoryRule, CategoryType

logger = get_logger(__name__)

# Segments that are only a bank name, never the counterparty
BANK_SEGMENTS = {'icici bank', 'hdfc bank', 'sbi', 'axis bank', 'kotak', 'idbi bank', 'indian overseas bank'}

RAIL_PATTERNS = [
    re.compile(r"UPI/[^/]+/[^/]+/([^/]+)/", re.IGNORECASE),
    re.compile(r"NEFT/[^/]+/([^/]+)/", re.IGNORECASE),
    re.compile(r"IMPS/[^/]+/([^/]+)/", re.IGNORECASE),
]

_CAPITALIZED_RUN = re.compile(r"^((?:[A-Z][A-Za-z&.'-]*\s+){0,3}[A-Z][A-Za-z&.'-]*)")
_NOT_ENTITY_WORDS = {'UPI', 'NEFT', 'IMPS', 'RTGS', 'POS', 'ATM', 'ACH', 'ECS', 'NACH', 'TO', 'BY', 'FROM'}


def normalize_entity_name(name: str) -> str:
    """Lowercase, trim and collapse whitespace."""
    return ' '.join(name.lower().split())


def extract_entity_name(description: str) -> str:
    """
    Pull the counterparty name out of a bank description.

    Tries, in order: slash segments after the rail and reference
    ("UPI/P2M/123/Acme Traders/Sale" -> "Acme Traders"), the UPI/NEFT/IMPS
    patterns, the leading capitalized words, then the first 30 characters.
    """
    desc = description.strip()

    segments = [s.strip() for s in desc.split('/') if s.strip()]
    if len(segments) >= 3:
        for segment in segments[2:]:
            if ' '.join(segment.lower().split()) in BANK_SEGMENTS:
                continue
            if re.fullmatch(r"\d+", segment) or re.fullmatch(r"[A-Z0-9]{10,}", segment, re.IGNORECASE):
                continue
            if re.match(r"IOBAN", segment, re.IGNORECASE):
                continue
            if len(segment) < 3:
                continue
            return segment

    for pattern in RAIL_PATTERNS:
        m = pattern.search(desc)
        if m and len(m.group(1).strip()) >= 3:
            return m.group(1).strip()

    m = _CAPITALIZED_RUN.match(desc)
    if m:
        words = [w for w in m.group(1).split() if w.upper() not in _NOT_ENTITY_WORDS]
        candidate = ' '.join(words)
        if len(candidate) >= 3:
            return candidate

    return desc[:30].strip()


class CategoryRuleStore(ABC):
    """
    Persistence interface for CategoryRules.
    """

    @abstractmethod
    def get_rules(self, user_id: str) -> List[CategoryRule]:
        """Rules for a user, oldest first (first match wins)."""

    @abstractmethod
    def upsert(self, user_id: str, entity_name: str, category: str, type: CategoryType,
               source_description: Optional[str] = None, source_amount: Optional[float] = None,
               source_date: Optional[str] = None) -> CategoryRule:
        """Create the rule, or update category/type and bump times_applied."""

    @abstractmethod
    def increment(self, user_id: str, entity_name_normalized: str) -> Optional[CategoryRule]:
        """Atomically add one to times_applied."""

    def find_matching_rule(self, user_id: str, description: str) -> Optional[CategoryRule]:
        """
        First rule whose normalized entity name is a substring of the
        lowercased description. Plain containment, no word boundaries.
        """
        normalized = description.lower().strip()
        for rule in self.get_rules(user_id):
            if rule.entity_name_normalized and rule.entity_name_normalized in normalized:
                return rule
        return None


class InMemoryCategoryRuleStore(CategoryRuleStore):
    def __init__(self, rules: Optional[List[CategoryRule]] = None):
        self._rules: Dict[Tuple[str, str], CategoryRule] = {}
        self._lock = threading.Lock()
        for rule in rules or []:
            self._rules[rule.key] = rule

    def get_rules(self, user_id: str) -> List[CategoryRule]:
        with self._lock:
            return [r for r in self._rules.values() if r.user_id == user_id]

    def upsert(self, user_id, entity_name, category, type, source_description=None,
               source_amount=None, source_date=None) -> CategoryRule:
        normalized = normalize_entity_name(entity_name)
        if not normalized:
            raise ValueError("Entity name is empty")
        type = CategoryType.parse(type)

        with self._lock:
            rule = self._rules.get((user_id, normalized))
            if rule is not None:
                rule.category = category
                rule.type = type
                rule.times_applied += 1
                rule.updated_at = datetime.now()
                logger.info("Category rule updated", user_id=user_id, entity=normalized,
                            category=category, times_applied=rule.times_applied)
            else:
                rule = CategoryRule(
                    user_id=user_id,
                    entity_name=entity_name.strip(),
                    entity_name_normalized=normalized,
                    category=category,
                    type=type,
                    source_description=source_description,
                    source_amount=source_amount,
                    source_date=source_date,
                )
                self._rules[rule.key] = rule
                logger.info("Category rule created", user_id=user_id, entity=normalized, category=category)
            self._persist()
            return rule

    def increment(self, user_id, entity_name_normalized) -> Optional[CategoryRule]:
        with self._lock:
            rule = self._rules.get((user_id, entity_name_normalized))
            if rule is None:
                return None
            rule.times_applied += 1
            rule.updated_at = datetime.now()
            self._persist()
            return rule

    def _persist(self) -> None:
        """Hook for durable subclasses; called with the lock held."""


class JsonCategoryRuleStore(InMemoryCategoryRuleStore):
    """
    Rules persisted to a single JSON file, rewritten after every change.
    """

    def __init__(self, path: str):
        self.path = path
        rules = []
        if os.path.exists(path):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    rules = [CategoryRule.from_dict(d) for d in json.load(f)]
                logger.debug("Loaded category rules", path=path, count=len(rules))
            except (ValueError, KeyError) as e:
                logger.error(f"Error loading rules file: {e}", path=path)
                raise
        super().__init__(rules)

    def _persist(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump([r.to_dict() for r in self._rules.values()], f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

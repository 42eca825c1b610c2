"""
Transaction Categorizer

Precedence: user rules, then the static pattern table, then the default
category for the amount's sign.
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional

from ledgerflow.common.logging_config import get_logger
from ledgerflow.common.models import Category, CategoryRule, CategoryType, Transaction
from ledgerflow.parsing.exceptions import CategorizationAmbiguous
from .patterns import CategoryTable, default_category_table
from .rules import CategoryRuleStore, InMemoryCategoryRuleStore, extract_entity_name

logger = get_logger(__name__)

SOURCE_USER_RULE = 'user_rule'
SOURCE_PATTERN = 'pattern'
SOURCE_DEFAULT = 'default'


class TransactionCategorizer:
    """
    Assigns a Category to transactions.

    Args:
        table: Injected category table (defaults to the built-in one)
        rule_store: Per-user learned rules
    """

    def __init__(self, table: Optional[CategoryTable] = None, rule_store: Optional[CategoryRuleStore] = None):
        self.table = table or default_category_table()
        self.rule_store = rule_store if rule_store is not None else InMemoryCategoryRuleStore()

    def classify(self, transaction: Transaction, user_id: Optional[str] = None):
        """
        Returns:
            (Category, source) where source is 'user_rule', 'pattern' or 'default'
        """
        description = transaction.description or ''
        if transaction.amount is None or transaction.amount == 0:
            raise CategorizationAmbiguous(f"No usable amount for '{description}'")

        if user_id:
            rule = self.rule_store.find_matching_rule(user_id, description)
            if rule is not None:
                self.rule_store.increment(user_id, rule.entity_name_normalized)
                return rule.as_category(), SOURCE_USER_RULE

        category = self.table.match(description, transaction.amount)
        if category is not None:
            return category, SOURCE_PATTERN

        return self.table.default_for(transaction.amount), SOURCE_DEFAULT

    def categorize(self, transaction: Transaction, user_id: Optional[str] = None) -> Category:
        category, _ = self.classify(transaction, user_id)
        return category

    def categorize_all(self, transactions: List[Transaction], user_id: Optional[str] = None) -> List[Transaction]:
        """
        Categorize a batch. A record that cannot be classified gets the
        default category for its sign; the batch always completes.
        """
        result = []
        counts = {SOURCE_USER_RULE: 0, SOURCE_PATTERN: 0, SOURCE_DEFAULT: 0}
        for txn in transactions:
            try:
                category, source = self.classify(txn, user_id)
            except Exception as e:
                logger.warning(
                    f"Categorization failed, using default: {e}",
                    description=txn.description,
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                category, source = self.table.default_for(txn.amount or Decimal('0')), SOURCE_DEFAULT
            counts[source] += 1
            result.append(txn.with_category(category, source))

        logger.info("Transactions categorized", tx_count=len(result), user_id=user_id, **counts)
        return result

    def apply_rules(self, user_id: str, transactions: List[Transaction]) -> List[Transaction]:
        """
        Re-apply only the user's rules; unmatched transactions are returned unchanged.
        """
        result = []
        for txn in transactions:
            rule = self.rule_store.find_matching_rule(user_id, txn.description or '')
            result.append(txn.with_category(rule.as_category(), SOURCE_USER_RULE) if rule else txn)
        return result

    def learn(self, user_id: str, description: str, category: str, type,
              amount: Optional[float] = None, txn_date: Optional[date] = None) -> CategoryRule:
        """
        Record a user's manual categorization as a rule for the description's entity.
        """
        entity = extract_entity_name(description)
        return self.rule_store.upsert(
            user_id,
            entity,
            category,
            CategoryType.parse(type),
            source_description=description,
            source_amount=float(amount) if amount is not None else None,
            source_date=txn_date.isoformat() if txn_date else None,
        )

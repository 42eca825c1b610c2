"""
Bookkeeping Facade

Entry points for delivery layers (HTTP, CLI): document processing,
categorization with P&L, journal generation and category learning.
"""
import os
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from ledgerflow.common.config import Settings
from ledgerflow.common.logging_config import get_logger
from ledgerflow.common.models import CategoryRule, Transaction
from ledgerflow.core.accounts import ChartOfAccounts, default_chart_of_accounts
from ledgerflow.core.aggregator import PLSummary, aggregate
from ledgerflow.core.categorizer import TransactionCategorizer
from ledgerflow.core.journal import JournalGenerator, JournalResult
from ledgerflow.core.patterns import CategoryTable
from ledgerflow.core.rules import CategoryRuleStore, InMemoryCategoryRuleStore, JsonCategoryRuleStore
from ledgerflow.parsing.config.columns import ColumnMapping
from ledgerflow.parsing.extractors import DocumentAnalysisService, AIExtractionFallback, GeminiStatementExtractor
from ledgerflow.parsing.pipeline import ExtractionOrchestrator, ProcessingResult

logger = get_logger(__name__)


@dataclass
class CategorizationResult:
    categorized_transactions: List[Transaction]
    pl_summary: PLSummary

    def to_dict(self):
        return {
            'categorized_transactions': [t.to_dict() for t in self.categorized_transactions],
            'pl_summary': self.pl_summary.to_dict(),
        }


class BookkeepingFacade:
    """
    Wires the orchestrator, categorizer and journal generator together.
    Every collaborator can be injected; defaults come from Settings.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 analysis_service: Optional[DocumentAnalysisService] = None,
                 ai_fallback: Optional[AIExtractionFallback] = None,
                 rule_store: Optional[CategoryRuleStore] = None,
                 category_table: Optional[CategoryTable] = None,
                 column_mapping: Optional[ColumnMapping] = None):
        self.settings = settings or Settings()

        if ai_fallback is None and self.settings.gemini_api_key:
            ai_fallback = GeminiStatementExtractor(self.settings.gemini_api_key, self.settings.gemini_model)

        if rule_store is None:
            rule_store = (JsonCategoryRuleStore(self.settings.rules_path) if self.settings.rules_path
                          else InMemoryCategoryRuleStore())

        if category_table is None and self.settings.categories_path:
            category_table = CategoryTable.from_yaml(self.settings.categories_path)
        if column_mapping is None and self.settings.columns_path:
            column_mapping = ColumnMapping.from_yaml(self.settings.columns_path)

        self.rule_store = rule_store
        self.orchestrator = ExtractionOrchestrator(self.settings, analysis_service, ai_fallback, column_mapping)
        self.categorizer = TransactionCategorizer(category_table, rule_store)
        self.journal = JournalGenerator(self.settings.review_threshold, self.settings.balance_tolerance)

    def default_chart(self) -> ChartOfAccounts:
        path = self.settings.chart_path
        if path and os.path.exists(path):
            return ChartOfAccounts.from_json(path)
        return default_chart_of_accounts()

    def process_document(self, buffer: bytes, mime_type: str, filename: Optional[str] = None,
                         password: Optional[str] = None) -> ProcessingResult:
        return self.orchestrator.orchestrate(buffer, mime_type, filename, password)

    def categorize_and_aggregate(self, transactions: List[Transaction],
                                 user_id: Optional[str] = None) -> CategorizationResult:
        categorized = self.categorizer.categorize_all(transactions, user_id)
        return CategorizationResult(categorized, aggregate(categorized))

    def build_journal(self, categorized_transactions: List[Transaction],
                      chart_of_accounts: Optional[ChartOfAccounts] = None) -> JournalResult:
        chart = chart_of_accounts if chart_of_accounts is not None else self.default_chart()
        return self.journal.generate(categorized_transactions, chart)

    def update_category(self, user_id: str, description: str, category: str, type,
                        amount: Optional[float] = None, txn_date: Optional[date] = None) -> CategoryRule:
        """Learn a manual categorization for future documents of this user."""
        return self.categorizer.learn(user_id, description, category, type, amount, txn_date)

    def apply_rules(self, user_id: str, transactions: List[Transaction]) -> List[Transaction]:
        return self.categorizer.apply_rules(user_id, transactions)

    def get_rules(self, user_id: str) -> List[CategoryRule]:
        return self.rule_store.get_rules(user_id)

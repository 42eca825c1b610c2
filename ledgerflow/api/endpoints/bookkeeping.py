from fastapi import APIRouter, Depends, HTTPException

from ledgerflow.api.endpoints.schemas import CategorizeRequest, JournalRequest, to_transactions
from ledgerflow.api.state import get_facade
from ledgerflow.common.logging_config import get_logger
from ledgerflow.core.accounts import ChartOfAccounts
from ledgerflow.facade import BookkeepingFacade

logger = get_logger(__name__)
router = APIRouter()


@router.post("/categorize")
def categorize(payload: CategorizeRequest, facade: BookkeepingFacade = Depends(get_facade)):
    """Categorize transactions and return them with the P&L summary."""
    transactions, rejected = to_transactions(payload.transactions)
    if rejected:
        logger.warning("Rejected invalid transactions", count=len(rejected), endpoint="categorize")
    result = facade.categorize_and_aggregate(transactions, payload.user_id)
    response = result.to_dict()
    response['rejected'] = rejected
    return response


@router.post("/journal")
def journal(payload: JournalRequest, facade: BookkeepingFacade = Depends(get_facade)):
    """Build journal entries; invalid inputs are reported as errors, not failures."""
    transactions, rejected = to_transactions(payload.transactions)

    chart = None
    if payload.chart_of_accounts:
        try:
            chart = ChartOfAccounts.from_dict(payload.chart_of_accounts)
        except (KeyError, ValueError, TypeError) as e:
            raise HTTPException(status_code=400, detail=f"Invalid chart of accounts: {e}")

    result = facade.build_journal(transactions, chart)
    response = result.to_dict()
    response['errors'] = rejected + response['errors']
    return response

from fastapi import APIRouter, Depends, HTTPException

from ledgerflow.api.endpoints.schemas import UpdateCategoryRequest
from ledgerflow.api.state import get_facade
from ledgerflow.common.logging_config import get_logger
from ledgerflow.facade import BookkeepingFacade
from ledgerflow.utils.dates import parse_date

logger = get_logger(__name__)
router = APIRouter()


@router.post("/update-category")
def update_category(payload: UpdateCategoryRequest, facade: BookkeepingFacade = Depends(get_facade)):
    """
    Save a user's manual categorization as a rule for future statements.
    """
    try:
        rule = facade.update_category(
            payload.user_id,
            payload.description,
            payload.category,
            payload.type,
            amount=payload.amount,
            txn_date=parse_date(payload.date),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Category rule saved", user_id=payload.user_id, entity=rule.entity_name_normalized)
    return {"message": f"Rule saved for '{rule.entity_name}'", "rule": rule.to_dict()}


@router.get("/{user_id}")
def list_rules(user_id: str, facade: BookkeepingFacade = Depends(get_facade)):
    rules = facade.get_rules(user_id)
    return {"rules": [r.to_dict() for r in rules], "count": len(rules)}

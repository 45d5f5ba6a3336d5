from fastapi import Depends, HTTPException, Request

from feeledger.core.exceptions import ServiceError
from feeledger.ledger.registry import LedgerRegistry
from feeledger.ledger.view_model import FeeLedgerViewModel


def get_registry(request: Request) -> LedgerRegistry:
    return request.app.state.ledger_registry


def get_ledger(school_id: str, registry: LedgerRegistry = Depends(get_registry)) -> FeeLedgerViewModel:
    """Resolve the mounted view model for ``school_id``; 404 if the school was never mounted."""
    try:
        return registry.get(school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

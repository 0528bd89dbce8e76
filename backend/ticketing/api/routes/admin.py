from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ticketing.api.deps import require_roles
from ticketing.db.session import get_db
from ticketing.schemas.checkout import transaction_out
from ticketing.services import checkout, reconciliation

router = APIRouter(dependencies=[Depends(require_roles("admin"))])

@router.post("/transactions/{transaction_id}/mark-free")
def mark_transaction_free(transaction_id: int, db: Session = Depends(get_db)):
    """Comp a transaction and deliver its tickets."""
    checkout.mark_transaction_as_free(db, transaction_id)
    reconciliation.complete_delivery(db, transaction_id)
    transaction = checkout.load_transaction(db, transaction_id)
    return {"transaction": transaction_out(transaction).model_dump(mode="json")}

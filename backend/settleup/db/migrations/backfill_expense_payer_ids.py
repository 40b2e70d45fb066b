"""
Migration script to move legacy name-based payer references onto participant ids.
Run this once for databases created before expenses.payer_id existed.
"""
from sqlalchemy.orm import Session
from settleup.core.exceptions import SnapshotValidationError
from settleup.models.expense import Expense
from settleup.services.snapshot_loader import build_payer_lookup, resolve_payer_id


def migrate(db: Session) -> dict:
    """Set payer_id from paid_by for every expense that can be resolved."""
    pending = db.query(Expense).filter(
        Expense.payer_id.is_(None),
        Expense.paid_by.isnot(None)
    ).order_by(Expense.event_id, Expense.id).all()

    lookups = {}
    migrated = 0
    unresolved = []
    for expense in pending:
        if expense.event_id not in lookups:
            lookups[expense.event_id] = build_payer_lookup(db, expense.event_id)
        try:
            expense.payer_id = resolve_payer_id(expense, lookups[expense.event_id])
            migrated += 1
        except SnapshotValidationError:
            unresolved.append(expense.id)

    db.commit()
    return {"migrated": migrated, "unresolved": unresolved}


if __name__ == "__main__":
    from settleup.db.session import SessionLocal

    db = SessionLocal()
    try:
        result = migrate(db)
        print(f"Backfilled payer_id on {result['migrated']} expenses")
        if result["unresolved"]:
            print(f"Could not resolve payer for expenses: {result['unresolved']}")
    except Exception as e:
        db.rollback()
        print(f"Migration failed: {e}")
        raise
    finally:
        db.close()

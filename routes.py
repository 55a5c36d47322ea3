"""API Routes for expenses"""
from fastapi import APIRouter, Body, Depends, Request
from typing import Any, Annotated, Dict, List, Optional
from services import expenses_service
from services.expense_validation import validate_create, validate_partial
from models.expense import CreatedResponse, Expense, MessageResponse
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

# --- Dependency Function ---
def get_expenses_collection(request: Request) -> AsyncIOMotorCollection:
    """Dependency to get the MongoDB expenses collection from the request state."""
    collection = request.state.expenses_collection
    if collection is None:
        logger.error("Expenses collection not found in application state. Check MongoDB connection.")
        raise ConnectionError("Expenses collection is not configured.")
    return collection

# Type hints for the dependencies
ExpensesCollectionDep = Annotated[AsyncIOMotorCollection, Depends(get_expenses_collection)]
# A missing body is treated as an empty object
PayloadDep = Annotated[Optional[Dict[str, Any]], Body()]

# --- API Routes ---

@router.post("/expenses", status_code=201, response_model=CreatedResponse, summary="Add Expense", description="Validates and stores a new expense record.")
async def create_expense(collection: ExpensesCollectionDep, payload: PayloadDep = None):
    logger.info("POST /expenses endpoint called.")
    record = validate_create(payload or {})
    expense_id = await expenses_service.create_expense(collection, record)
    return CreatedResponse(message="Expense added successfully", id=expense_id)

@router.get("/expenses", response_model=List[Expense], response_model_exclude_unset=True, summary="Get All Expenses", description="Retrieves all expense records in insertion order.")
async def get_expenses(collection: ExpensesCollectionDep) -> List[Expense]:
    logger.info("GET /expenses endpoint called.")
    return await expenses_service.get_all_expenses_from_db(collection)

@router.patch("/expenses/{expense_id}", response_model=MessageResponse, summary="Update Expense", description="Applies the fields present in the body over the stored expense.")
async def update_expense(expense_id: str, collection: ExpensesCollectionDep, payload: PayloadDep = None):
    logger.info(f"PATCH /expenses/{expense_id} endpoint called.")
    fields = validate_partial(payload or {})
    await expenses_service.update_expense(collection, expense_id, fields)
    return MessageResponse(message="Expense updated successfully")

@router.delete("/expenses/{expense_id}", response_model=MessageResponse, summary="Delete Expense", description="Deletes a single expense record.")
async def delete_expense(expense_id: str, collection: ExpensesCollectionDep):
    logger.info(f"DELETE /expenses/{expense_id} endpoint called.")
    await expenses_service.delete_expense(collection, expense_id)
    return MessageResponse(message="Expense deleted successfully")

@router.get("/health", summary="Health Check", description="Reports whether the database is reachable.")
async def health_check(request: Request) -> Dict[str, str]:
    collection = request.state.expenses_collection
    database = "unavailable"
    if collection is not None:
        try:
            await collection.database.command('ping')
            database = "ok"
        except PyMongoError as e:
            logger.warning(f"Health check ping failed: {e}")
    return {"status": "ok", "database": database}

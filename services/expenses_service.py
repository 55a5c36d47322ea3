"""Service layer mediating between validated expense fields and MongoDB."""
import logging
from typing import Any, Dict, List
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection # Type hint for collection
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from errors import ExpenseNotFound, MalformedId
from models.expense import Expense

logger = logging.getLogger(__name__)

# --- Identifier Handling ---

def parse_expense_id(expense_id: str) -> ObjectId:
    """Parses a path identifier into an ObjectId, raising MalformedId if it is not one."""
    try:
        return ObjectId(expense_id)
    except (InvalidId, TypeError):
        logger.warning(f"Malformed expense id: {expense_id!r}")
        raise MalformedId()

def document_to_expense(doc: Dict[str, Any]) -> Expense:
    """Converts a stored document into the Expense model, exposing _id as a hex id."""
    doc = dict(doc)
    if '_id' in doc: doc['id'] = str(doc.pop('_id'))
    return Expense(**doc)

# --- Database Interaction Functions (Depend on collection passed from route) ---

async def create_expense(collection: AsyncIOMotorCollection, record: Dict[str, Any]) -> str:
    """Inserts one validated expense record and returns its new identifier."""
    try:
        result = await collection.insert_one(dict(record))
    except PyMongoError as e:
        logger.error(f"Database error inserting expense: {e}")
        raise ConnectionError(f"Database error inserting expense: {e}")
    expense_id = str(result.inserted_id)
    logger.info(f"Inserted expense {expense_id} into collection '{collection.name}'.")
    return expense_id

async def get_all_expenses_from_db(collection: AsyncIOMotorCollection) -> List[Expense]:
    """
    Fetches all expenses from the provided MongoDB collection in insertion order.

    Every document written through this service fits the Expense model. Documents
    that do not (written to the collection by other clients) are logged and left
    out of the result.
    """
    logger.info(f"Fetching all expenses from collection '{collection.name}'...")
    expenses = []
    try:
        cursor = collection.find().sort('_id', 1)
        async for doc in cursor:
            try:
                expenses.append(document_to_expense(doc))
            except ValidationError as e:
                logger.error(f"Skipping document ID {doc.get('_id', 'N/A')} not written by this service (does not fit the Expense model): {e}")
                continue
    except PyMongoError as e:
        logger.error(f"Database error fetching expenses: {e}")
        raise ConnectionError(f"Database error fetching expenses: {e}")
    logger.info(f"Fetched {len(expenses)} expenses successfully.")
    return expenses

async def update_expense(collection: AsyncIOMotorCollection, expense_id: str, fields: Dict[str, Any]) -> None:
    """
    Merges the given validated fields over the stored expense.

    Fields missing from `fields` keep their stored values. An empty map still
    issues the update and succeeds when the record exists.
    """
    object_id = parse_expense_id(expense_id)
    try:
        result = await collection.update_one({"_id": object_id}, {"$set": dict(fields)})
    except PyMongoError as e:
        logger.error(f"Database error updating expense {expense_id}: {e}")
        raise ConnectionError(f"Database error updating expense: {e}")
    if result.matched_count == 0:
        raise ExpenseNotFound()
    logger.info(f"Updated expense {expense_id} (fields: {sorted(fields)}).")

async def delete_expense(collection: AsyncIOMotorCollection, expense_id: str) -> None:
    """Deletes one expense by identifier."""
    object_id = parse_expense_id(expense_id)
    try:
        result = await collection.delete_one({"_id": object_id})
    except PyMongoError as e:
        logger.error(f"Database error deleting expense {expense_id}: {e}")
        raise ConnectionError(f"Database error deleting expense: {e}")
    if result.deleted_count == 0:
        raise ExpenseNotFound()
    logger.info(f"Deleted expense {expense_id}.")

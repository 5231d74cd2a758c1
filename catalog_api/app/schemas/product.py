"""
Pydantic models for product operation results.

Products themselves have no fixed schema: clients submit arbitrary
fields and get them back verbatim alongside ``_id`` and ``ownerID``.
Only the write acknowledgements have a fixed shape.
"""

from pydantic import BaseModel

# Keys owned by the store; never taken from a client payload.
RESERVED_FIELDS = ("_id", "ownerID")

NO_PRODUCTS = {"result": "No Products Found."}
NO_RECORD = {"result": "No Record Found."}


class UpdateResult(BaseModel):
    acknowledged: bool = True
    matchedCount: int
    modifiedCount: int


class DeleteResult(BaseModel):
    acknowledged: bool = True
    deletedCount: int

from pydantic import BaseModel

from app.crud.base import CRUDBase
from app.models.assignment import Assignment
from app.schemas.assignment import AssignmentCreate


class CRUDAssignment(CRUDBase[Assignment, AssignmentCreate, BaseModel]):
    pass


assignment = CRUDAssignment(Assignment)

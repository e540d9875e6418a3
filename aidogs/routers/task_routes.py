from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aidogs.auth.token import require_admin
from aidogs.database import get_db
from aidogs.errors import NotFound, ValidationError
from aidogs.models.task import Task
from aidogs.schemas.task_schema import TaskCreate, TaskOut, TaskUpdate

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


def _get_task(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise NotFound("Task not found")
    return task


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("A task with this claimTreshold already exists")


@router.get("/", response_model=List[TaskOut])
def list_tasks(db: Session = Depends(get_db)):
    return db.query(Task).order_by(Task.id).all()


@router.post("/", response_model=TaskOut, status_code=201)
def create_task(task: TaskCreate, db: Session = Depends(get_db), admin: dict = Depends(require_admin)):
    new_task = Task(**task.model_dump())
    db.add(new_task)
    _commit(db)
    db.refresh(new_task)
    return new_task


@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    changes: TaskUpdate,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    task = _get_task(db, task_id)
    for key, value in changes.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(task, key, value)
    _commit(db)
    db.refresh(task)
    return task


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), admin: dict = Depends(require_admin)):
    task = _get_task(db, task_id)
    db.delete(task)
    db.commit()
    # Users keep their entries for deleted tasks
    return {"message": "Task deleted successfully"}

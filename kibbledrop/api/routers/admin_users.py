# kibbledrop/api/routers/admin_users.py
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kibbledrop.api.deps import require_admin
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import AdminUserOut, AdminUserUpdate, AnalyticsOut
from kibbledrop.services.analytics_service import AnalyticsService
from kibbledrop.services.user_service import UserService

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/users", response_model=List[AdminUserOut])
def list_users(db: Session = Depends(get_db)):
    return UserService(db).admin_list()


@router.get("/users/{user_id}", response_model=AdminUserOut)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return UserService(db).admin_get(user_id)


@router.put("/users/{user_id}", response_model=AdminUserOut)
def update_user(user_id: int, payload: AdminUserUpdate, db: Session = Depends(get_db)):
    return UserService(db).admin_update(user_id, payload)


@router.delete("/users/{user_id}")
def delete_user(user_id: int, admin: UserModel = Depends(require_admin), db: Session = Depends(get_db)):
    UserService(db).admin_delete(user_id, acting_admin_id=admin.id)
    return {"message": "User deleted successfully"}


@router.get("/analytics", response_model=AnalyticsOut)
def analytics(db: Session = Depends(get_db)):
    return AnalyticsService(db).overview()

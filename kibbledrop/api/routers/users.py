# kibbledrop/api/routers/users.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kibbledrop.api.deps import get_current_user
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import UserOut, ProfileUpdate, ChangePasswordIn, UserStatsOut
from kibbledrop.services.user_service import UserService

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("", response_model=UserOut)
def me(user: UserModel = Depends(get_current_user)):
    return user


@router.put("", response_model=UserOut)
def update_profile(
    payload: ProfileUpdate,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return UserService(db).update_profile(user, payload)


@router.get("/stats", response_model=UserStatsOut)
def stats(user: UserModel = Depends(get_current_user), db: Session = Depends(get_db)):
    return UserService(db).stats(user)


@router.post("/change-password")
def change_password(
    payload: ChangePasswordIn,
    user: UserModel = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    UserService(db).change_password(user, payload)
    return {"message": "Password updated successfully"}

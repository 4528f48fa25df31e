# kibbledrop/api/routers/auth.py
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from kibbledrop.api.deps import COOKIE_NAME, get_optional_user
from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.schemas import RegisterIn, LoginIn, TokenOut, UserOut
from kibbledrop.services.user_service import UserService
from kibbledrop.utils.settings import ACCESS_TOKEN_EXPIRE_MINUTES, COOKIE_SECURE

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    return UserService(db).register(payload)


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    user, token = UserService(db).authenticate(payload.email, payload.password)
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return {"access_token": token, "token_type": "bearer", "user": user}


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/session")
def session(user: UserModel | None = Depends(get_optional_user)):
    if user is None:
        return {"user": None}
    return {"user": UserOut.model_validate(user)}
